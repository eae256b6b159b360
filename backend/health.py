"""Health check view for uptime monitoring."""
from __future__ import annotations

from django.conf import settings
from django.db import connections
from django.db.utils import OperationalError
from django.http import JsonResponse


def _database_status() -> str:
    connection = connections["default"]
    try:
        if connection.connection is None:
            # Avoid opening new connections to keep the check fast.
            return "unverified"
        return "ok" if connection.is_usable() else "unavailable"
    except OperationalError:
        return "unavailable"


def health_view(request):
    """Return service health along with the configured anchor backend."""

    backend_path = settings.CERTIFICATE_ANCHOR.get("BACKEND", "")
    payload = {
        "status": "ok",
        "database": _database_status(),
        "anchor_backend": backend_path.rsplit(".", 1)[-1],
    }
    return JsonResponse(payload)
