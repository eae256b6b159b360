"""Shared Django settings for the certificate service."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Iterable, Sequence

from django.core.exceptions import ImproperlyConfigured

import dj_database_url
import sentry_sdk
from sentry_sdk.integrations.django import DjangoIntegration


BASE_DIR = Path(__file__).resolve().parent.parent.parent


def get_env_bool(name: str, default: bool = False) -> bool:
    """Return a boolean for an environment variable."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"true", "1", "yes"}


def get_env_int(name: str, default: int) -> int:
    """Return an integer for ``name`` or ``default`` if unset."""

    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ImproperlyConfigured(
            f"Environment variable {name} must be an integer."
        ) from exc


def get_env_json(name: str, default: dict | None = None) -> dict:
    """Return a JSON object stored in ``name``."""

    raw_value = os.getenv(name)
    if not raw_value:
        return dict(default or {})
    try:
        loaded = json.loads(raw_value)
    except json.JSONDecodeError as exc:
        raise ImproperlyConfigured(
            f"Environment variable {name} must contain valid JSON."
        ) from exc
    if not isinstance(loaded, dict):
        raise ImproperlyConfigured(
            f"Environment variable {name} must decode to a JSON object."
        )
    return loaded


def get_secret_key(debug: bool) -> str:
    """Fetch the Django secret key from the environment."""

    secret_key = os.getenv("DJANGO_SECRET_KEY") or os.getenv("SECRET_KEY")
    if secret_key:
        return secret_key
    if debug:
        return "django-insecure-development-key"
    raise ImproperlyConfigured(
        "DJANGO_SECRET_KEY must be set in production environments."
    )


DEFAULT_ALLOWED_HOSTS = (
    "localhost",
    "127.0.0.1",
)


def _normalise_list(values: Iterable[str]) -> list[str]:
    """Return a list of unique, stripped values preserving order."""

    normalised: list[str] = []
    for value in values:
        candidate = value.strip()
        if not candidate or candidate in normalised:
            continue
        normalised.append(candidate)
    return normalised


def build_allowed_hosts(*env_vars: str, default: Iterable[str] | None = None) -> list[str]:
    """Aggregate allowed hosts from comma-separated environment variables."""

    hosts: list[str] = []
    for env_var in env_vars:
        hosts.extend((os.getenv(env_var) or "").split(","))

    hosts = _normalise_list(hosts)
    if hosts:
        return hosts
    return list(default if default is not None else DEFAULT_ALLOWED_HOSTS)


def build_database_config(
    primary_env_var: str,
    *,
    fallback_env_vars: Sequence[str] = (),
    default_url: str | None = None,
    conn_max_age: int = 600,
) -> dict[str, object]:
    """Build a Django database configuration from a database URL.

    SQLite URLs stand in for the local JSON store of the original platform
    and PostgreSQL URLs (including Supabase connection strings) for the hosted
    one; both sit behind the same ORM-backed certificate store.
    """

    database_url = os.getenv(primary_env_var)
    for candidate in fallback_env_vars:
        if database_url:
            break
        database_url = os.getenv(candidate)

    database_url = database_url or default_url
    if not database_url:
        raise ImproperlyConfigured("A database connection string is required.")

    return dj_database_url.parse(database_url, conn_max_age=conn_max_age)


def _get_sample_rate(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default

    try:
        return float(value)
    except ValueError:
        return default


def init_sentry() -> None:
    """Configure Sentry monitoring when a DSN is available."""

    dsn = os.getenv("SENTRY_DSN")
    if not dsn:
        return None

    environment = (
        os.getenv("SENTRY_ENVIRONMENT")
        or os.getenv("DJANGO_ENV")
        or ("development" if get_env_bool("DJANGO_DEBUG", True) else "production")
    )

    sentry_sdk.init(
        dsn=dsn,
        integrations=[DjangoIntegration()],
        environment=environment,
        send_default_pii=False,
        traces_sample_rate=_get_sample_rate("SENTRY_TRACES_SAMPLE_RATE", 0.2),
    )
    sentry_sdk.set_tag("environment", environment)
    return None


DEBUG = get_env_bool("DJANGO_DEBUG", default=False)
SECRET_KEY = get_secret_key(True)
ALLOWED_HOSTS = build_allowed_hosts("ALLOWED_HOSTS")

INSTALLED_APPS = [
    'rest_framework',
    'apps.audit',
    'apps.certificates',
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
]

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'apps.users.authentication.JWTAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'UNAUTHENTICATED_USER': 'django.contrib.auth.models.AnonymousUser',
}

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'backend.urls'
TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
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

ASGI_APPLICATION = 'backend.asgi.application'
WSGI_APPLICATION = 'backend.wsgi.application'

DATABASES = {
    'default': build_database_config(
        'DATABASE_URL',
        fallback_env_vars=('SUPABASE_DB_URL',),
        default_url='sqlite:///db.sqlite3',
    )
}

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

MEDIA_URL = '/media/'
MEDIA_ROOT = Path(os.getenv("MEDIA_ROOT", str(BASE_DIR / 'media')))

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# Certificate lifecycle configuration.
CERTIFICATE_PDF_ROOT = Path(os.getenv("CERTIFICATE_PDF_ROOT", str(MEDIA_ROOT / 'pdfs')))
CERTIFICATE_ASSET_DIR = Path(
    os.getenv(
        "CERTIFICATE_ASSET_DIR",
        str(BASE_DIR / 'apps' / 'certificates' / 'assets'),
    )
)
CERTIFICATE_TEMPLATES = {
    'default': 'certificates/certificate.html',
    **get_env_json("CERTIFICATE_TEMPLATES"),
}
CERTIFICATE_ISSUER_NAME = os.getenv("CERTIFICATE_ISSUER_NAME", "AI First Academy")
CERTIFICATE_VERIFY_BASE_URL = os.getenv("CERTIFICATE_VERIFY_BASE_URL", "")
CERTIFICATE_VERIFY_PDF_HASH = get_env_bool("CERTIFICATE_VERIFY_PDF_HASH", True)
CERTIFICATE_OWNER_ADDRESS = os.getenv("CERTIFICATE_OWNER_ADDRESS", "")
CERTIFICATE_ANCHOR_MAX_ATTEMPTS = get_env_int("CERTIFICATE_ANCHOR_MAX_ATTEMPTS", 3)
CERTIFICATE_STORE_MAX_ATTEMPTS = get_env_int("CERTIFICATE_STORE_MAX_ATTEMPTS", 3)
CERTIFICATE_ANCHOR_REVOCATIONS = get_env_bool("CERTIFICATE_ANCHOR_REVOCATIONS", False)


def _build_anchor_config() -> dict[str, object]:
    """Select the chain anchor backend from the environment."""

    rpc_url = os.getenv("CHAIN_RPC_URL")
    timeout = get_env_int("CHAIN_CONFIRMATION_TIMEOUT", 120)
    if not rpc_url:
        return {
            'BACKEND': 'apps.certificates.anchoring.ledger.LedgerAnchorClient',
            'OPTIONS': {
                'confirmation_timeout': timeout,
            },
        }

    return {
        'BACKEND': 'apps.certificates.anchoring.evm.Web3AnchorClient',
        'OPTIONS': {
            'rpc_url': rpc_url,
            'contract_address': os.getenv("CHAIN_CONTRACT_ADDRESS", ""),
            'private_key': os.getenv("CHAIN_PRIVATE_KEY", ""),
            'confirmation_timeout': timeout,
            'request_timeout': get_env_int("CHAIN_REQUEST_TIMEOUT", 30),
        },
    }


CERTIFICATE_ANCHOR = _build_anchor_config()


# JWT bearer authentication shared with the platform's auth service.
JWT_AUTH_SECRET = os.getenv("JWT_AUTH_SECRET") or os.getenv("JWT_SECRET") or SECRET_KEY
JWT_AUTH_ALGORITHM = os.getenv("JWT_AUTH_ALGORITHM", "HS256")


# Structured logging configuration persisting lifecycle actions.
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {
            'format': '%(levelname)s %(name)s %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
        'database': {
            'level': 'INFO',
            'class': 'apps.audit.logging.DatabaseLogHandler',
        },
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'INFO',
        },
        'apps.certificates': {
            'handlers': ['console', 'database'],
            'level': 'INFO',
            'propagate': False,
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
}


init_sentry()
