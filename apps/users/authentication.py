"""DRF authentication backed by bearer JWTs issued by the platform."""

from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import authentication, exceptions

from apps.users.jwt_utils import JWTValidationError, decode_token, extract_bearer_token


class JWTAuthentication(authentication.BaseAuthentication):
    """Authenticate ``Authorization: Bearer <jwt>`` requests.

    The ``sub`` claim carries the user's primary key. The decoded claims are
    exposed as ``request.auth`` so permission classes can read ``roles``.
    """

    keyword = "Bearer"

    def authenticate(self, request):
        token = extract_bearer_token(request.META.get("HTTP_AUTHORIZATION"))
        if not token:
            return None

        try:
            payload = decode_token(token)
        except JWTValidationError as exc:
            raise exceptions.AuthenticationFailed(str(exc)) from exc

        subject = payload.get("sub")
        if subject in (None, ""):
            raise exceptions.AuthenticationFailed("Token has no subject.")

        user_model = get_user_model()
        try:
            user = user_model.objects.get(pk=subject)
        except (user_model.DoesNotExist, ValueError, TypeError) as exc:
            raise exceptions.AuthenticationFailed("Unknown user.") from exc

        if not user.is_active:
            raise exceptions.AuthenticationFailed("User account is disabled.")

        return user, payload

    def authenticate_header(self, request):
        return self.keyword


__all__ = ["JWTAuthentication"]
