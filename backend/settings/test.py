"""Settings used by the pytest suite."""

from __future__ import annotations

import tempfile
from pathlib import Path

from .base import *  # noqa: F401,F403

DEBUG = False
SECRET_KEY = "test-secret-key"
JWT_AUTH_SECRET = "test-jwt-secret"
ALLOWED_HOSTS = ["testserver", "localhost"]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

MEDIA_ROOT = Path(tempfile.mkdtemp(prefix="certificate-media-"))
CERTIFICATE_PDF_ROOT = MEDIA_ROOT / "pdfs"
CERTIFICATE_VERIFY_BASE_URL = "https://academy.example.com"

CERTIFICATE_ANCHOR = {
    "BACKEND": "apps.certificates.anchoring.ledger.LedgerAnchorClient",
    "OPTIONS": {},
}
CERTIFICATE_ANCHOR_REVOCATIONS = False
