"""
Development settings for the certificate service.
Reads a ``.env`` file at the project root and defaults to a local SQLite
database unless ``DEV_DATABASE_URL`` or ``DATABASE_URL`` is provided.
"""

from __future__ import annotations

import logging
import os

import environ

from .base import *  # noqa: F401,F403
from .base import (  # noqa: F401
    BASE_DIR,
    build_allowed_hosts,
    build_database_config,
    get_env_bool,
    get_secret_key,
)

env = environ.Env()
environ.Env.read_env(os.path.join(BASE_DIR, ".env"))

DEBUG = get_env_bool("DJANGO_DEBUG", default=True)
SECRET_KEY = get_secret_key(DEBUG)

ALLOWED_HOSTS = build_allowed_hosts(
    "DEV_ALLOWED_HOSTS",
    "ALLOWED_HOSTS",
    default=("localhost", "127.0.0.1"),
)

DATABASES = {
    "default": build_database_config(
        "DEV_DATABASE_URL",
        fallback_env_vars=("DATABASE_URL", "SUPABASE_DB_URL"),
        default_url=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
    )
}

_active_db = DATABASES["default"]
logging.getLogger(__name__).info(
    "Using database engine: %s | Name: %s | Host: %s",
    _active_db.get("ENGINE"),
    _active_db.get("NAME"),
    _active_db.get("HOST"),
)
