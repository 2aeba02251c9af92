from django.conf import settings

from rest_framework import serializers
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.response import Response

from documents.repositories import fetch_payment_methods, fetch_programs
from documents.store import StoreUnavailable
from utils.errors import error_response
from utils.i18n import request_context

from .pricing import compute_price
from .reference import get_catalog


class QuoteSerializer(serializers.Serializer):
    school_level = serializers.CharField(required=False, allow_blank=True, max_length=64)
    program = serializers.CharField(required=False, allow_blank=True, max_length=64)
    selected_courses = serializers.ListField(
        child=serializers.CharField(max_length=64),
        required=False,
        allow_empty=True,
    )


def _server_error(e: Exception):
    detail = "Server error"
    if settings.DEBUG:
        detail = f"{detail}: {e.__class__.__name__}: {str(e)}".strip()
    return error_response(detail, status_code=500, code='server_error')


@api_view(['GET'])
@authentication_classes([])
@permission_classes([])
def api_catalog_levels(_request):
    """GET /api/catalog/levels
    School levels with their programs and courses (static reference data).
    """
    return Response({"levels": get_catalog().as_dict()})


@api_view(['POST'])
@authentication_classes([])
@permission_classes([])
def api_catalog_quote(request):
    """POST /api/catalog/quote
    Body: { school_level, program, selected_courses: [] } -> { calculated_price }
    """
    ser = QuoteSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    data = ser.validated_data
    price = compute_price(
        get_catalog(),
        data.get('school_level') or None,
        data.get('program') or None,
        data.get('selected_courses') or [],
    )
    return Response({
        "school_level": data.get('school_level') or '',
        "program": data.get('program') or '',
        "selected_courses": list(data.get('selected_courses') or []),
        "calculated_price": price,
    })


@api_view(['GET'])
@authentication_classes([])
@permission_classes([])
def api_programs(request):
    """GET /api/programs?lang=
    Program records from the document store, localized to the request language.
    """
    ctx = request_context(request)
    try:
        programs = fetch_programs()
    except StoreUnavailable:
        raise
    except Exception as e:
        return _server_error(e)

    category = (request.GET.get("category") or "").strip()
    results = [p.to_public(ctx.language) for p in programs if not category or p.category == category]
    return Response({"language": ctx.language, "count": len(results), "results": results})


@api_view(['GET'])
@authentication_classes([])
@permission_classes([])
def api_payment_methods(request):
    """GET /api/payment-methods?lang="""
    ctx = request_context(request)
    try:
        methods = fetch_payment_methods()
    except StoreUnavailable:
        raise
    except Exception as e:
        return _server_error(e)
    results = [m.to_public(ctx.language) for m in methods]
    return Response({"language": ctx.language, "count": len(results), "results": results})
