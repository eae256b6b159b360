"""DRF permission classes for certificate administration."""

from __future__ import annotations

from rest_framework.permissions import BasePermission

from apps.users.jwt_utils import ADMIN_ROLE, JWTValidationError, roles_from_claims


def is_certificate_admin(request) -> bool:
    user = request.user
    if not user or not user.is_authenticated:
        return False
    if user.is_staff or user.is_superuser:
        return True

    claims = request.auth if isinstance(request.auth, dict) else None
    try:
        return ADMIN_ROLE in roles_from_claims(claims)
    except JWTValidationError:
        return False


class IsCertificateAdmin(BasePermission):
    """Allow staff users or tokens carrying the ``admin`` role."""

    message = "Admin access required."

    def has_permission(self, request, view):  # type: ignore[override]
        return is_certificate_admin(request)


class IsOwnerOrCertificateAdmin(BasePermission):
    """Allow the certificate holder or an administrator."""

    def has_object_permission(self, request, view, obj):  # type: ignore[override]
        return obj.user_id == request.user.pk or is_certificate_admin(request)


__all__ = ["IsCertificateAdmin", "IsOwnerOrCertificateAdmin", "is_certificate_admin"]
