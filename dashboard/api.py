"""Admin API.

Every mutation answers with the full dashboard payload, re-read from the
document store and re-aggregated, so the client never patches its own copy.
"""
import logging
from typing import Any, Dict

from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.response import Response

from catalog.records import serialize_registration
from documents import repositories as repo
from documents.store import COUPONS, PAYMENT_METHODS, PROGRAMS, REGISTRATIONS
from utils.drf_auth import FirebaseAuthentication, IsEnrollmentAdmin
from utils.errors import error_response
from utils.i18n import RequestContext, request_context

from .aggregation import compute_stats
from .serializers import (
    CouponInputSerializer,
    PaymentMethodInputSerializer,
    ProgramInputSerializer,
    RegistrationUpdateSerializer,
)


logger = logging.getLogger(__name__)


def _ctx(request) -> RequestContext:
    user = getattr(request, 'user', None)
    return request_context(request, uid=getattr(user, 'uid', None), email=getattr(user, 'email', None))


def dashboard_payload(ctx: RequestContext) -> Dict[str, Any]:
    registrations = repo.fetch_registrations()
    programs = repo.fetch_programs()
    methods = repo.fetch_payment_methods()
    coupons = repo.fetch_coupons()
    stats = compute_stats(registrations, programs, ctx.language)

    program_rows = []
    for p in programs:
        row = p.to_public(ctx.language)
        row['translations'] = p.record.translations
        program_rows.append(row)
    method_rows = []
    for m in methods:
        row = m.to_public(ctx.language)
        row['translations'] = m.record.translations
        method_rows.append(row)

    return {
        'language': ctx.language,
        'registrations': [serialize_registration(doc_id, data) for doc_id, data in registrations],
        'programs': program_rows,
        'payment_methods': method_rows,
        'coupons': [c.to_public() for c in coupons],
        'stats': stats.to_dict(),
    }


def _not_found(kind: str, doc_id: str):
    return error_response(f'{kind} {doc_id!r} not found', status_code=404, code='not_found')


def _refreshed(request, status_code=status.HTTP_200_OK) -> Response:
    return Response(dashboard_payload(_ctx(request)), status=status_code)


@api_view(['GET'])
@authentication_classes([FirebaseAuthentication])
@permission_classes([IsEnrollmentAdmin])
def admin_dashboard(request):
    """GET /api/admin/dashboard
    Registrations, programs, payment methods, coupons and aggregated stats.
    """
    return _refreshed(request)


@api_view(['POST'])
@authentication_classes([FirebaseAuthentication])
@permission_classes([IsEnrollmentAdmin])
def admin_programs(request):
    """POST /api/admin/programs"""
    ser = ProgramInputSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    program = ser.to_program()
    if repo.document_exists(PROGRAMS, program.id):
        return error_response('Program already exists', status_code=409, code='already_exists',
                              fields={'id': ['A program with this id already exists.']})
    repo.save_program(program)
    logger.info("admin %s created program %s", request.user.email, program.id)
    return _refreshed(request, status.HTTP_201_CREATED)


@api_view(['PUT', 'DELETE'])
@authentication_classes([FirebaseAuthentication])
@permission_classes([IsEnrollmentAdmin])
def admin_program_detail(request, program_id: str):
    """PUT|DELETE /api/admin/programs/{id}"""
    if not repo.document_exists(PROGRAMS, program_id):
        return _not_found('Program', program_id)
    if request.method == 'DELETE':
        repo.delete_document(PROGRAMS, program_id)
        logger.info("admin %s deleted program %s", request.user.email, program_id)
        return _refreshed(request)

    ser = ProgramInputSerializer(data={**request.data, 'id': program_id})
    ser.is_valid(raise_exception=True)
    repo.save_program(ser.to_program())
    logger.info("admin %s updated program %s", request.user.email, program_id)
    return _refreshed(request)


@api_view(['POST'])
@authentication_classes([FirebaseAuthentication])
@permission_classes([IsEnrollmentAdmin])
def admin_payment_methods(request):
    """POST /api/admin/payment-methods"""
    ser = PaymentMethodInputSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    method = ser.to_payment_method()
    if repo.document_exists(PAYMENT_METHODS, method.value):
        return error_response('Payment method already exists', status_code=409, code='already_exists',
                              fields={'value': ['A payment method with this value already exists.']})
    repo.save_payment_method(method)
    logger.info("admin %s created payment method %s", request.user.email, method.value)
    return _refreshed(request, status.HTTP_201_CREATED)


@api_view(['PUT', 'DELETE'])
@authentication_classes([FirebaseAuthentication])
@permission_classes([IsEnrollmentAdmin])
def admin_payment_method_detail(request, value: str):
    """PUT|DELETE /api/admin/payment-methods/{value}"""
    if not repo.document_exists(PAYMENT_METHODS, value):
        return _not_found('Payment method', value)
    if request.method == 'DELETE':
        repo.delete_document(PAYMENT_METHODS, value)
        logger.info("admin %s deleted payment method %s", request.user.email, value)
        return _refreshed(request)

    ser = PaymentMethodInputSerializer(data={**request.data, 'value': value})
    ser.is_valid(raise_exception=True)
    repo.save_payment_method(ser.to_payment_method())
    logger.info("admin %s updated payment method %s", request.user.email, value)
    return _refreshed(request)


@api_view(['POST'])
@authentication_classes([FirebaseAuthentication])
@permission_classes([IsEnrollmentAdmin])
def admin_coupons(request):
    """POST /api/admin/coupons"""
    ser = CouponInputSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    coupon = ser.to_coupon()
    if repo.document_exists(COUPONS, coupon.id):
        return error_response('Coupon already exists', status_code=409, code='already_exists',
                              fields={'id': ['A coupon with this id already exists.']})
    repo.save_coupon(coupon)
    logger.info("admin %s created coupon %s", request.user.email, coupon.id)
    return _refreshed(request, status.HTTP_201_CREATED)


@api_view(['PUT', 'DELETE'])
@authentication_classes([FirebaseAuthentication])
@permission_classes([IsEnrollmentAdmin])
def admin_coupon_detail(request, coupon_id: str):
    """PUT|DELETE /api/admin/coupons/{id}"""
    if not repo.document_exists(COUPONS, coupon_id):
        return _not_found('Coupon', coupon_id)
    if request.method == 'DELETE':
        repo.delete_document(COUPONS, coupon_id)
        logger.info("admin %s deleted coupon %s", request.user.email, coupon_id)
        return _refreshed(request)

    ser = CouponInputSerializer(data={**request.data, 'id': coupon_id})
    ser.is_valid(raise_exception=True)
    repo.save_coupon(ser.to_coupon())
    logger.info("admin %s updated coupon %s", request.user.email, coupon_id)
    return _refreshed(request)


@api_view(['PATCH', 'DELETE'])
@authentication_classes([FirebaseAuthentication])
@permission_classes([IsEnrollmentAdmin])
def admin_registration_detail(request, registration_id: str):
    """PATCH|DELETE /api/admin/registrations/{id}
    PATCH only touches the verification fields.
    """
    if not repo.document_exists(REGISTRATIONS, registration_id):
        return _not_found('Registration', registration_id)
    if request.method == 'DELETE':
        repo.delete_document(REGISTRATIONS, registration_id)
        logger.info("admin %s deleted registration %s", request.user.email, registration_id)
        return _refreshed(request)

    ser = RegistrationUpdateSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    repo.update_registration(registration_id, ser.to_document())
    logger.info("admin %s updated registration %s", request.user.email, registration_id)
    return _refreshed(request)
