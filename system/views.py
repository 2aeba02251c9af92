from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.response import Response

from accounts.auth import firebase_init_error
from documents.store import get_document_store
from utils.drf_auth import FirebaseAuthentication, IsFirebaseAuthenticated


@api_view(['GET'])
@authentication_classes([])
@permission_classes([])
def health(_request):
    """Liveness plus the configured document store. Does not touch the network."""
    body = {"status": "ok", "document_store": get_document_store().backend_name}
    init_error = firebase_init_error()
    if init_error:
        body["firebase_error"] = init_error
    return Response(body)


@api_view(['GET'])
@authentication_classes([FirebaseAuthentication])
@permission_classes([IsFirebaseAuthenticated])
def secure_ping(request):
    return Response({"status": "ok", "uid": request.user.uid})
