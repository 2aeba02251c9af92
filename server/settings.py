"""
Django settings for the enrollment server.

All deployment-specific values are read from environment variables.
"""
import os
import sys
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: str = 'False') -> bool:
    return (os.getenv(name, default) or '').strip().lower() in ('1', 'true', 'yes')


RUNNING_TESTS = 'test' in sys.argv or 'pytest' in sys.modules

SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-dev-only-change-me')

DEBUG = _env_bool('DJANGO_DEBUG')

ALLOWED_HOSTS = [h.strip() for h in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h.strip()]
if RUNNING_TESTS:
    ALLOWED_HOSTS.append('testserver')


INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'accounts',
    'catalog',
    'documents',
    'payments',
    'enrollment',
    'dashboard',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'server.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'server.wsgi.application'


DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.getenv('DATABASE_PATH', str(BASE_DIR / 'db.sqlite3')),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'


REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': [],
    'EXCEPTION_HANDLER': 'utils.drf_exceptions.drf_exception_handler',
    'UNAUTHENTICATED_USER': None,
}


# Administrator identity for /api/admin/*. Compared case-insensitively with the token email.
ADMIN_EMAIL = os.getenv('ADMIN_EMAIL', '')

# Document store: 'firestore' (default) or 'memory'. Tests always use the in-memory store.
DOCUMENT_STORE_BACKEND = 'memory' if RUNNING_TESTS else os.getenv('DOCUMENT_STORE_BACKEND', 'firestore')

GEMINI_API_KEY = os.getenv('GEMINI_API_KEY', '')
GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-1.5-flash')

# Fernet key for enrollment form data at rest. Empty keeps it in plaintext.
PII_ENCRYPTION_KEY = os.getenv('PII_ENCRYPTION_KEY', '')

ENROLLMENT_SESSION_TTL_MINUTES = int(os.getenv('ENROLLMENT_SESSION_TTL_MINUTES', '120') or '120')

PAYMENT_PROOF_MAX_BYTES = int(os.getenv('PAYMENT_PROOF_MAX_BYTES', str(5 * 1024 * 1024)) or '0')
DATA_UPLOAD_MAX_MEMORY_SIZE = max(PAYMENT_PROOF_MAX_BYTES * 2, 2621440)


LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {
            'format': '%(asctime)s | %(levelname)s | %(name)s | %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': LOG_LEVEL,
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': os.getenv('DJANGO_LOG_LEVEL', 'INFO').upper(),
            'propagate': False,
        },
    },
}
