import logging

from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.response import Response

from utils.drf_auth import FirebaseAuthentication, IsFirebaseAuthenticated

from .auth import is_admin_claims


_logger = logging.getLogger(__name__)


@api_view(['GET'])
@authentication_classes([FirebaseAuthentication])
@permission_classes([IsFirebaseAuthenticated])
def me(request):
    """GET /api/auth/me
    The verified identity and whether it may use the admin API. Clients use this
    to decide between the dashboard and the access-denied page.
    """
    user = request.user
    is_admin = is_admin_claims(user.claims)
    if not is_admin:
        _logger.info("non-admin identity %s checked admin access", user.uid)
    return Response({
        "uid": user.uid,
        "email": user.email,
        "name": user.claims.get('name') or '',
        "is_admin": is_admin,
    })
