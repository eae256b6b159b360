"""Persistence boundary for certificate records."""
from __future__ import annotations

import logging
from typing import Any

from django.core.exceptions import ValidationError as ModelValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from .exceptions import (
    DuplicateCredentialError,
    NotFoundError,
    StoreWriteError,
    ValidationError,
)
from .models import Certificate

logger = logging.getLogger(__name__)


class CertificateStore:
    """Create, look up and revoke :class:`Certificate` rows."""

    def validate_fields(self, **fields: Any) -> None:
        """Run model field validation on ``fields`` alone, before anything is written."""

        names = {field.name for field in Certificate._meta.fields}
        try:
            Certificate(**fields).clean_fields(exclude=names - set(fields))
        except ModelValidationError as exc:
            raise ValidationError("Invalid certificate record.", details=str(exc)) from exc

    def create(self, **fields: Any) -> Certificate:
        certificate = Certificate(**fields)
        try:
            certificate.full_clean()
        except ModelValidationError as exc:
            if "credential_id" in getattr(exc, "error_dict", {}) and Certificate.objects.filter(
                credential_id=certificate.credential_id
            ).exists():
                raise DuplicateCredentialError(details=str(exc)) from exc
            raise ValidationError("Invalid certificate record.", details=str(exc)) from exc

        try:
            with transaction.atomic():
                certificate.save(force_insert=True)
        except IntegrityError as exc:
            if certificate.reissued_from and self.successor_of(certificate.reissued_from):
                raise ValidationError(
                    f"Certificate {certificate.reissued_from} was already reissued.",
                    details=str(exc),
                ) from exc
            raise DuplicateCredentialError(details=str(exc)) from exc
        except DatabaseError as exc:
            raise StoreWriteError(details=str(exc)) from exc
        return certificate

    def get_by_id(self, pk) -> Certificate | None:
        return Certificate.objects.filter(pk=pk).first()

    def get_by_credential_id(self, credential_id: str) -> Certificate | None:
        if not credential_id:
            return None
        return Certificate.objects.with_credential_id(credential_id).first()

    def mark_revoked(self, credential_id: str, reason: str | None = None) -> Certificate:
        """Revoke a certificate. Revoking it again returns it unchanged."""

        with transaction.atomic():
            certificate = (
                Certificate.objects.select_for_update()
                .with_credential_id(credential_id)
                .first()
            )
            if certificate is None:
                raise NotFoundError()
            if certificate.status == Certificate.Status.REVOKED:
                return certificate

            certificate.status = Certificate.Status.REVOKED
            certificate.revoked_at = timezone.now()
            certificate.revoked_reason = (reason or "").strip()
            certificate.save(
                update_fields=["status", "revoked_at", "revoked_reason", "updated_at"]
            )
        return certificate

    def list_by_user(self, user_id):
        return Certificate.objects.for_user(user_id)

    def successor_of(self, credential_id: str) -> Certificate | None:
        return (
            Certificate.objects.filter(reissued_from__iexact=credential_id)
            .order_by("created_at")
            .first()
        )

    def lineage(self, credential_id: str) -> list[Certificate]:
        """Return the certificate followed by its ancestors, newest first."""

        chain: list[Certificate] = []
        seen: set[str] = set()
        current = self.get_by_credential_id(credential_id)
        while current is not None:
            key = current.credential_id.upper()
            if key in seen:
                logger.error(
                    "Lineage cycle detected at %s",
                    current.credential_id,
                    extra={"context": {"action": "certificate.lineage.cycle"}},
                )
                break
            seen.add(key)
            chain.append(current)
            if not current.reissued_from:
                break
            current = self.get_by_credential_id(current.reissued_from)
        return chain


__all__ = ["CertificateStore"]
