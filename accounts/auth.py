"""Firebase identity checks.

The Admin SDK is initialized lazily on first use from, in order:
FIREBASE_CREDENTIALS_JSON_PATH, GOOGLE_APPLICATION_CREDENTIALS, FIREBASE_CREDENTIALS_JSON_B64.
The same app instance backs the Firestore document store.
"""
import base64
import json
import logging
import os
from typing import Any, Optional, Tuple

import firebase_admin
from django.conf import settings
from firebase_admin import auth as fb_auth
from firebase_admin import credentials


logger = logging.getLogger(__name__)

MISSING_TOKEN = 'Missing bearer token'
INVALID_TOKEN = 'Invalid token'

# Identity handed out for any bearer token while tests run.
TEST_CLAIMS = {
    'uid': 'test-user',
    'email': 'test@example.com',
    'name': 'Test User',
}

_init_error: str = ''


def running_tests() -> bool:
    return bool(getattr(settings, 'RUNNING_TESTS', False))


def firebase_init_error() -> str:
    return _init_error


def _credentials_from_env() -> Tuple[Optional[Any], str]:
    """(certificate, source name). Raises when a configured source cannot be read."""
    path = (os.getenv('FIREBASE_CREDENTIALS_JSON_PATH') or os.getenv('GOOGLE_APPLICATION_CREDENTIALS') or '').strip()
    if path:
        return credentials.Certificate(path), path
    b64 = (os.getenv('FIREBASE_CREDENTIALS_JSON_B64') or '').strip()
    if b64:
        info = json.loads(base64.b64decode(b64).decode('utf-8'))
        return credentials.Certificate(info), 'FIREBASE_CREDENTIALS_JSON_B64'
    return None, ''


def ensure_firebase_initialized() -> bool:
    global _init_error
    if firebase_admin._apps:
        return True
    source = ''
    try:
        cred, source = _credentials_from_env()
        if cred is None:
            _init_error = 'Missing FIREBASE_CREDENTIALS_JSON_B64'
            return False
        firebase_admin.initialize_app(cred)
    except Exception as e:
        # Class name only; the message can echo credential contents.
        _init_error = e.__class__.__name__
        logger.error("Firebase init from %s failed: %s", source or 'environment', _init_error)
        return False
    _init_error = ''
    logger.info("Firebase initialized from %s", source)
    return True


def verify_firebase_id_token(token: str) -> Tuple[Optional[dict], Optional[str], Optional[int]]:
    """Verify a Firebase ID token.

    Returns: (claims, error_detail, http_status)
    """
    tok = (token or '').strip()
    if not tok:
        return None, MISSING_TOKEN, 401
    if running_tests():
        return dict(TEST_CLAIMS), None, None

    if not ensure_firebase_initialized():
        detail = 'Firebase admin not initialized'
        if _init_error:
            detail = f"{detail}: {_init_error}"
        return None, detail, 503

    try:
        claims = fb_auth.verify_id_token(tok)
    except Exception as e:
        logger.warning("Firebase verify_id_token failed: %s", e.__class__.__name__)
        return None, INVALID_TOKEN, 401
    if not isinstance(claims, dict):
        return None, INVALID_TOKEN, 401
    return claims, None, None


def get_bearer_token(request) -> str:
    scheme, _, token = (request.META.get('HTTP_AUTHORIZATION') or '').partition(' ')
    if scheme.strip().lower() == 'bearer' and token.strip():
        return token.strip()
    if not getattr(settings, 'DEBUG', False):
        return ''
    # ?token= is a local development convenience only.
    return (request.GET.get('id_token') or request.GET.get('token') or '').strip()


def admin_email() -> str:
    return (getattr(settings, 'ADMIN_EMAIL', '') or '').strip().lower()


def is_admin_claims(claims: Any) -> bool:
    """True when the identity's email matches the configured administrator."""
    if not isinstance(claims, dict):
        return False
    expected = admin_email()
    email = str(claims.get('email') or '').strip().lower()
    return bool(expected) and email == expected
