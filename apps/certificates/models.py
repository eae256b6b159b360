"""Database models for certificate records and the anchor ledger."""

from __future__ import annotations

import uuid

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone


def verification_url_for(credential_id: str) -> str:
    """Return the public verification page address for a credential."""

    base_url = (settings.CERTIFICATE_VERIFY_BASE_URL or "").rstrip("/")
    return f"{base_url}/verify/{credential_id}"


class CertificateQuerySet(models.QuerySet):
    """Custom queryset helpers for the :class:`Certificate` model."""

    def active(self) -> "CertificateQuerySet":
        return self.filter(status=Certificate.Status.ACTIVE)

    def for_user(self, user_id) -> "CertificateQuerySet":
        return self.filter(user_id=user_id)

    def with_credential_id(self, credential_id: str) -> "CertificateQuerySet":
        return self.filter(credential_id__iexact=(credential_id or "").strip())


class CertificateManager(models.Manager["Certificate"]):
    """Manager exposing the queryset helpers."""

    def get_queryset(self) -> CertificateQuerySet:  # type: ignore[override]
        return CertificateQuerySet(self.model, using=self._db)

    def active(self) -> CertificateQuerySet:
        return self.get_queryset().active()

    def for_user(self, user_id) -> CertificateQuerySet:
        return self.get_queryset().for_user(user_id)

    def with_credential_id(self, credential_id: str) -> CertificateQuerySet:
        return self.get_queryset().with_credential_id(credential_id)


class Certificate(models.Model):
    """An issued credential and the fingerprint of its rendered PDF."""

    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        REVOKED = "revoked", "Revoked"
        REISSUED = "reissued", "Reissued"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    credential_id = models.CharField(max_length=96, unique=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="certificates",
    )
    track_id = models.CharField(max_length=64)
    title = models.CharField(max_length=255)
    recipient_name = models.CharField(max_length=255)
    issuer_name = models.CharField(max_length=255)
    issued_at = models.DateTimeField(default=timezone.now, editable=False)
    score = models.FloatField(
        default=100,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    pdf_path = models.CharField(max_length=255)
    pdf_hash = models.CharField(max_length=64)
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True,
    )
    revoked_at = models.DateTimeField(blank=True, null=True)
    revoked_reason = models.TextField(blank=True)
    reissued_from = models.CharField(
        max_length=96,
        blank=True,
        db_index=True,
        help_text="Credential id of the certificate this one superseded.",
    )
    anchor_tx_hash = models.CharField(max_length=80, blank=True)
    anchor_block_number = models.BigIntegerField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CertificateManager()

    class Meta:
        ordering = ("-issued_at", "-created_at")
        constraints = [
            models.UniqueConstraint(
                fields=("reissued_from",),
                condition=~models.Q(reissued_from=""),
                name="unique_certificate_successor",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover - human readable representation
        return f"Certificate<{self.credential_id}:{self.status}>"

    @property
    def is_active(self) -> bool:
        return self.status == self.Status.ACTIVE

    @property
    def pdf_filename(self) -> str:
        return self.pdf_path.rsplit("/", 1)[-1]

    @property
    def verification_url(self) -> str:
        return verification_url_for(self.credential_id)


class AnchorBlock(models.Model):
    """One entry of the append-only, hash-chained anchor ledger."""

    class Kind(models.TextChoices):
        ISSUE = "issue", "Issue"
        REVOKE = "revoke", "Revoke"

    sequence = models.PositiveBigIntegerField(unique=True)
    kind = models.CharField(max_length=16, choices=Kind.choices)
    credential_id = models.CharField(max_length=96, db_index=True)
    title = models.CharField(max_length=255, blank=True)
    track_id = models.CharField(max_length=64, blank=True)
    owner_address = models.CharField(max_length=64, blank=True)
    previous_hash = models.CharField(max_length=64)
    block_hash = models.CharField(max_length=64, unique=True)
    created_at = models.DateTimeField()

    class Meta:
        ordering = ("sequence",)
        constraints = [
            models.UniqueConstraint(
                fields=("credential_id", "kind"),
                name="unique_anchor_per_credential_kind",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover - human readable representation
        return f"AnchorBlock<{self.sequence}:{self.kind}:{self.credential_id}>"


__all__ = ["AnchorBlock", "Certificate", "verification_url_for"]
