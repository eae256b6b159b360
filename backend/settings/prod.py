"""Production settings for the certificate service."""

from __future__ import annotations

from django.conf import global_settings

from .base import *  # noqa: F401,F403
from .base import (
    build_allowed_hosts,
    build_database_config,
    get_env_bool,
    get_env_int,
    get_secret_key,
)

DEBUG = get_env_bool("DJANGO_DEBUG", default=False)

SECRET_KEY = get_secret_key(DEBUG)

ALLOWED_HOSTS = build_allowed_hosts(
    "PROD_ALLOWED_HOSTS",
    "ALLOWED_HOSTS",
    default=(".onrender.com",),
)

DATABASES["default"] = build_database_config(  # noqa: F405
    "PROD_DATABASE_URL",
    fallback_env_vars=("DATABASE_URL", "SUPABASE_DB_URL"),
    conn_max_age=600,
)

SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SECURE_SSL_REDIRECT = get_env_bool("DJANGO_SECURE_SSL_REDIRECT", default=True)
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
SECURE_HSTS_SECONDS = get_env_int("DJANGO_SECURE_HSTS_SECONDS", default=0)

STORAGES = {
    **getattr(global_settings, "STORAGES", {}),
    "staticfiles": {
        "BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage",
    },
}
