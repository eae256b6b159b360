"""Utilities for decoding and validating JWT bearer tokens."""

from __future__ import annotations

from typing import Any, Iterable, Sequence, Set

import jwt
from django.conf import settings
from jwt import InvalidTokenError

ADMIN_ROLE = "admin"


class JWTValidationError(Exception):
    """Raised when a JWT token cannot be decoded or validated."""


def _normalise_algorithms(value: Iterable[str] | str | None) -> Sequence[str]:
    if not value:
        return ("HS256",)

    if isinstance(value, str):
        return (value,)

    return tuple(value)


def extract_bearer_token(auth_header: str | None) -> str | None:
    """Return the JWT token from a standard ``Authorization`` header."""

    if not auth_header:
        return None

    parts = auth_header.split()
    if len(parts) != 2:
        return None

    prefix, token = parts
    if prefix.lower() != "bearer" or not token:
        return None

    return token


def decode_token(token: str) -> dict[str, Any]:
    """Decode ``token`` with the configured secret and return its claims."""

    if not token:
        raise JWTValidationError("Bearer token is missing.")

    secret = getattr(settings, "JWT_AUTH_SECRET", None) or settings.SECRET_KEY
    algorithms = _normalise_algorithms(getattr(settings, "JWT_AUTH_ALGORITHM", None))

    try:
        return jwt.decode(
            token,
            secret,
            algorithms=list(algorithms),
            options={"verify_aud": False},
        )
    except InvalidTokenError as exc:
        raise JWTValidationError("Invalid JWT token") from exc


def roles_from_claims(payload: dict[str, Any] | None) -> Set[str]:
    """Return the lowercase role names declared in the ``roles`` claim."""

    if not payload:
        return set()

    raw_roles = payload.get("roles")
    if raw_roles is None:
        return set()

    if isinstance(raw_roles, (list, tuple, set)):
        role_values = raw_roles
    else:
        role_values = [raw_roles]

    roles: Set[str] = set()
    for role in role_values:
        if not isinstance(role, str):
            raise JWTValidationError("Roles claim must contain strings.")
        roles.add(role.strip().lower())
    return roles


__all__ = [
    "ADMIN_ROLE",
    "JWTValidationError",
    "decode_token",
    "extract_bearer_token",
    "roles_from_claims",
]
