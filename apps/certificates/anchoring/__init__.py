"""Chain anchor backends and the settings-driven factory."""
from __future__ import annotations

from functools import lru_cache

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from .base import ChainAnchorClient, OnChainRecord, TransactionReceipt


def build_anchor_client(config: dict | None = None) -> ChainAnchorClient:
    """Instantiate the backend described by ``CERTIFICATE_ANCHOR``."""

    config = config if config is not None else settings.CERTIFICATE_ANCHOR
    backend_path = config.get("BACKEND")
    if not backend_path:
        raise ImproperlyConfigured("CERTIFICATE_ANCHOR must define a BACKEND.")

    backend_cls = import_string(backend_path)
    if not issubclass(backend_cls, ChainAnchorClient):
        raise ImproperlyConfigured(
            f"{backend_path} is not a ChainAnchorClient implementation."
        )
    return backend_cls(**config.get("OPTIONS", {}))


@lru_cache(maxsize=1)
def get_anchor_client() -> ChainAnchorClient:
    """Return the process-wide anchor client built from settings."""

    return build_anchor_client()


__all__ = [
    "ChainAnchorClient",
    "OnChainRecord",
    "TransactionReceipt",
    "build_anchor_client",
    "get_anchor_client",
]
