from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import APIException, AuthenticationFailed, PermissionDenied
from rest_framework.permissions import BasePermission

from accounts.auth import MISSING_TOKEN, get_bearer_token, is_admin_claims, verify_firebase_id_token


class FirebaseUnavailable(APIException):
    status_code = 503
    default_detail = 'Firebase admin not initialized'
    default_code = 'firebase_unavailable'


class AccessDenied(PermissionDenied):
    default_detail = 'Access denied.'
    default_code = 'access_denied'


@dataclass(frozen=True)
class FirebaseUser:
    """Verified token identity. Lives for one request; nothing is stored."""
    uid: str
    claims: dict = field(default_factory=dict)

    is_authenticated = True

    @property
    def email(self) -> str:
        return str(self.claims.get('email') or '')

    @property
    def is_admin(self) -> bool:
        return is_admin_claims(self.claims)


def _identity(claims) -> Optional[FirebaseUser]:
    uid = claims.get('uid') if isinstance(claims, dict) else None
    return FirebaseUser(uid=str(uid), claims=claims) if uid else None


class FirebaseAuthentication(BaseAuthentication):
    """Bearer Firebase ID token. No token leaves the request anonymous (401 from the permission)."""

    def authenticate(self, request) -> Optional[Tuple[FirebaseUser, dict]]:
        claims, err, http_status = verify_firebase_id_token(get_bearer_token(request))
        if err == MISSING_TOKEN:
            return None
        if err:
            if int(http_status or 0) == 503:
                raise FirebaseUnavailable(err)
            raise AuthenticationFailed(err)
        user = _identity(claims)
        if user is None:
            raise AuthenticationFailed('Invalid token')
        return user, claims

    def authenticate_header(self, request) -> str:
        return 'Bearer'


class IsFirebaseAuthenticated(BasePermission):
    def has_permission(self, request, view) -> bool:
        return isinstance(getattr(request, 'user', None), FirebaseUser)


class IsEnrollmentAdmin(IsFirebaseAuthenticated):
    """Signed-in identity whose email equals settings.ADMIN_EMAIL."""

    def has_permission(self, request, view) -> bool:
        if not super().has_permission(request, view):
            return False
        if not request.user.is_admin:
            raise AccessDenied()
        return True


def optional_firebase_identity(request) -> Optional[FirebaseUser]:
    """Identity for public endpoints: a bad or missing token is simply anonymous."""
    token = get_bearer_token(request)
    if not token:
        return None
    claims, err, _http_status = verify_firebase_id_token(token)
    return None if err else _identity(claims)
