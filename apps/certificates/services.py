"""Certificate lifecycle orchestration: issue, verify, revoke and reissue."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .anchoring import ChainAnchorClient, OnChainRecord, TransactionReceipt, get_anchor_client
from .credentials import generate_credential_id
from .exceptions import (
    CertificateError,
    CertificateIssuanceError,
    ChainAnchorError,
    DuplicateCredentialError,
    NotFoundError,
    StoreWriteError,
    TemplateRenderError,
    ValidationError,
)
from .hashing import file_sha256_hex, sha256_hex
from .models import Certificate, verification_url_for
from .rendering import CertificateRenderer, template_for_track
from .storage import CertificatePdfArchive
from .store import CertificateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedCertificate:
    certificate: Certificate
    pdf_bytes: bytes


@dataclass(frozen=True)
class ReissuedCertificate:
    old_certificate: Certificate
    new_certificate: Certificate
    pdf_bytes: bytes


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a verification; ``valid`` is ``False`` for every failure."""

    valid: bool
    certificate: Certificate | None = None
    blockchain: OnChainRecord | None = None
    reason: str = ""
    superseded_by: str | None = None


def _actor_id(actor) -> Any:
    return getattr(actor, "pk", None)


def _parse_score(score) -> float:
    if score is None or score == "":
        return 100.0
    try:
        value = float(score)
    except (TypeError, ValueError) as exc:
        raise ValidationError("score must be a number.") from exc
    if not 0 <= value <= 100:
        raise ValidationError("score must be between 0 and 100.")
    return value


class CertificateService:
    """Sequence the credential id, anchor, renderer and store for each operation."""

    def __init__(
        self,
        *,
        store: CertificateStore | None = None,
        anchor: ChainAnchorClient | None = None,
        renderer: CertificateRenderer | None = None,
        archive: CertificatePdfArchive | None = None,
        id_generator: Callable[[str], str] = generate_credential_id,
        anchor_max_attempts: int | None = None,
        store_max_attempts: int | None = None,
    ):
        self.store = store or CertificateStore()
        self.anchor = anchor or get_anchor_client()
        self.renderer = renderer or CertificateRenderer()
        self.archive = archive or CertificatePdfArchive()
        self.id_generator = id_generator
        self.anchor_max_attempts = max(
            1, anchor_max_attempts or settings.CERTIFICATE_ANCHOR_MAX_ATTEMPTS
        )
        self.store_max_attempts = max(
            1, store_max_attempts or settings.CERTIFICATE_STORE_MAX_ATTEMPTS
        )

    # Issue -----------------------------------------------------------------

    def _anchor(
        self, track_id: str, title: str, owner_address: str, actor_id
    ) -> tuple[str, TransactionReceipt]:
        for attempt in range(1, self.anchor_max_attempts + 1):
            credential_id = self.id_generator(track_id)
            try:
                return credential_id, self.anchor.issue_on_chain(
                    credential_id, title, track_id, owner_address
                )
            except ChainAnchorError as exc:
                logger.warning(
                    "Anchoring %s failed on attempt %s: %s",
                    credential_id,
                    attempt,
                    exc,
                    extra={
                        "user_id": actor_id,
                        "context": {
                            "action": "certificate.anchor.failed",
                            "credential_id": credential_id,
                            "attempt": attempt,
                            "tx_hash": exc.tx_hash,
                            "retryable": exc.retryable,
                            "details": exc.details,
                        },
                    },
                )
                # Never mint a new id once a transaction was submitted.
                if exc.retryable and exc.tx_hash is None and attempt < self.anchor_max_attempts:
                    continue
                raise CertificateIssuanceError(
                    exc.message, details=exc.details, retryable=exc.retryable
                ) from exc
        raise AssertionError("unreachable")  # pragma: no cover

    def _log_orphaned_anchor(
        self,
        credential_id: str,
        receipt: TransactionReceipt,
        *,
        stage: str,
        error: BaseException,
        actor_id,
    ) -> None:
        logger.critical(
            "Orphaned anchor for %s (tx %s): %s failed after anchoring",
            credential_id,
            receipt.tx_hash,
            stage,
            extra={
                "user_id": actor_id,
                "context": {
                    "action": "certificate.anchor.orphaned",
                    "credential_id": credential_id,
                    "tx_hash": receipt.tx_hash,
                    "block_number": receipt.block_number,
                    "stage": stage,
                    "error": f"{type(error).__name__}: {error}",
                },
            },
        )

    def _persist(
        self,
        credential_id: str,
        pdf_bytes: bytes,
        record: dict[str, Any],
        receipt: TransactionReceipt,
        actor_id,
    ) -> Certificate:
        last_error: BaseException | None = None
        for attempt in range(1, self.store_max_attempts + 1):
            try:
                # The row claims the credential id before its PDF is written.
                with transaction.atomic():
                    certificate = self.store.create(
                        pdf_path=self.archive.public_path(credential_id), **record
                    )
                    self.archive.save(credential_id, pdf_bytes)
                return certificate
            except (ValidationError, DuplicateCredentialError) as exc:
                self._log_orphaned_anchor(
                    credential_id, receipt, stage="store", error=exc, actor_id=actor_id
                )
                raise
            except (StoreWriteError, OSError) as exc:
                last_error = exc

            logger.warning(
                "Persisting %s failed on attempt %s: %s",
                credential_id,
                attempt,
                last_error,
                extra={
                    "user_id": actor_id,
                    "context": {
                        "action": "certificate.store.retry",
                        "credential_id": credential_id,
                        "attempt": attempt,
                    },
                },
            )

        self._log_orphaned_anchor(
            credential_id, receipt, stage="store", error=last_error, actor_id=actor_id
        )
        raise StoreWriteError(
            f"Could not persist certificate {credential_id}.",
            details=f"{type(last_error).__name__}: {last_error}",
        ) from last_error

    def issue(
        self,
        *,
        track_id: str,
        title: str,
        user,
        score=None,
        recipient_name: str | None = None,
        reissued_from: str = "",
        actor=None,
    ) -> IssuedCertificate:
        track_id = (track_id or "").strip()
        title = (title or "").strip()
        if not track_id or not title or user is None:
            raise ValidationError(details="trackId and title are required.")
        score_value = _parse_score(score)
        recipient = (
            (recipient_name or "").strip()
            or user.get_full_name().strip()
            or user.get_username()
        )
        actor_id = _actor_id(actor) or user.pk
        issuer_name = settings.CERTIFICATE_ISSUER_NAME
        self.store.validate_fields(
            track_id=track_id,
            title=title,
            recipient_name=recipient,
            issuer_name=issuer_name,
            score=score_value,
            reissued_from=reissued_from or "",
        )
        owner_address = settings.CERTIFICATE_OWNER_ADDRESS or self.anchor.default_owner_address

        credential_id, receipt = self._anchor(track_id, title, owner_address, actor_id)

        issued_at = timezone.now()
        render_data = {
            "recipient_name": recipient,
            "track": track_id,
            "title": title,
            "issuer": issuer_name,
            "issue_date": issued_at.date().isoformat(),
            "credential_id": credential_id,
            "score": score_value,
            "verification_url": verification_url_for(credential_id),
        }
        try:
            pdf_bytes = self.renderer.render(template_for_track(track_id), render_data)
        except CertificateError as exc:
            self._log_orphaned_anchor(
                credential_id, receipt, stage="render", error=exc, actor_id=actor_id
            )
            raise
        except Exception as exc:
            self._log_orphaned_anchor(
                credential_id, receipt, stage="render", error=exc, actor_id=actor_id
            )
            raise TemplateRenderError(details=f"{type(exc).__name__}: {exc}") from exc

        certificate = self._persist(
            credential_id,
            pdf_bytes,
            {
                "credential_id": credential_id,
                "user": user,
                "track_id": track_id,
                "title": title,
                "recipient_name": recipient,
                "issuer_name": issuer_name,
                "issued_at": issued_at,
                "score": score_value,
                "pdf_hash": sha256_hex(pdf_bytes),
                "status": Certificate.Status.ACTIVE,
                "reissued_from": reissued_from or "",
                "anchor_tx_hash": receipt.tx_hash,
                "anchor_block_number": receipt.block_number,
            },
            receipt,
            actor_id,
        )

        logger.info(
            "Issued certificate %s to user %s",
            certificate.credential_id,
            user.pk,
            extra={
                "user_id": actor_id,
                "context": {
                    "action": "certificate.issued",
                    "certificate_id": certificate.pk,
                    "credential_id": certificate.credential_id,
                    "track_id": track_id,
                    "tx_hash": receipt.tx_hash,
                    "reissued_from": certificate.reissued_from,
                },
            },
        )
        return IssuedCertificate(certificate=certificate, pdf_bytes=pdf_bytes)

    # Verify ----------------------------------------------------------------

    def _pdf_integrity_problem(self, certificate: Certificate) -> str:
        filename = certificate.pdf_filename
        if not filename or not self.archive.exists(filename):
            return "Certificate PDF is missing."
        try:
            digest = file_sha256_hex(self.archive.path(filename))
        except OSError as exc:
            logger.warning(
                "Could not read PDF for %s: %s",
                certificate.credential_id,
                exc,
                extra={
                    "context": {
                        "action": "certificate.pdf.unreadable",
                        "credential_id": certificate.credential_id,
                    }
                },
            )
            return "Certificate PDF could not be read."
        if digest != certificate.pdf_hash:
            return "Certificate PDF does not match its recorded hash."
        return ""

    def verify(self, credential_id: str) -> VerificationResult:
        certificate = self.store.get_by_credential_id(credential_id)
        if certificate is None:
            return VerificationResult(valid=False, reason="Certificate not found.")

        successor = self.store.successor_of(certificate.credential_id)
        superseded_by = successor.credential_id if successor else None

        def invalid(reason: str, blockchain: OnChainRecord | None = None) -> VerificationResult:
            return VerificationResult(
                valid=False,
                certificate=certificate,
                blockchain=blockchain,
                reason=reason,
                superseded_by=superseded_by,
            )

        try:
            on_chain = self.anchor.verify_on_chain(certificate.credential_id)
        except ChainAnchorError as exc:
            logger.warning(
                "Anchor lookup for %s failed: %s",
                certificate.credential_id,
                exc,
                extra={
                    "context": {
                        "action": "certificate.verify.anchor_unavailable",
                        "credential_id": certificate.credential_id,
                        "details": exc.details,
                    }
                },
            )
            return invalid("Blockchain record could not be retrieved.")

        if on_chain is None:
            return invalid("Certificate is not anchored on chain.")
        if on_chain.credential_id.upper() != certificate.credential_id.upper():
            return invalid("Blockchain record does not match this certificate.")

        if settings.CERTIFICATE_VERIFY_PDF_HASH:
            problem = self._pdf_integrity_problem(certificate)
            if problem:
                return invalid(problem, on_chain)

        if not certificate.is_active:
            return invalid(f"Certificate is {certificate.get_status_display().lower()}.", on_chain)
        if on_chain.revoked:
            return invalid("Certificate was revoked on chain.", on_chain)

        return VerificationResult(
            valid=True,
            certificate=certificate,
            blockchain=on_chain,
            superseded_by=superseded_by,
        )

    # Revoke / reissue ------------------------------------------------------

    def revoke(self, credential_id: str, reason: str | None = None, *, actor=None) -> Certificate:
        certificate = self.store.mark_revoked(credential_id, reason)
        actor_id = _actor_id(actor)

        logger.info(
            "Revoked certificate %s",
            certificate.credential_id,
            extra={
                "user_id": actor_id,
                "context": {
                    "action": "certificate.revoked",
                    "certificate_id": certificate.pk,
                    "credential_id": certificate.credential_id,
                    "reason": certificate.revoked_reason,
                },
            },
        )

        if settings.CERTIFICATE_ANCHOR_REVOCATIONS:
            try:
                self.anchor.revoke_on_chain(certificate.credential_id)
            except ChainAnchorError as exc:
                logger.error(
                    "Could not anchor revocation of %s: %s",
                    certificate.credential_id,
                    exc,
                    extra={
                        "user_id": actor_id,
                        "context": {
                            "action": "certificate.anchor.revoke_failed",
                            "credential_id": certificate.credential_id,
                            "tx_hash": exc.tx_hash,
                        },
                    },
                )
        return certificate

    def reissue(
        self,
        old_credential_id: str,
        reason: str | None = None,
        updated_fields: Mapping[str, Any] | None = None,
        *,
        actor=None,
    ) -> ReissuedCertificate:
        old = self.store.get_by_credential_id(old_credential_id)
        if old is None:
            raise NotFoundError()

        successor = self.store.successor_of(old.credential_id)
        if successor is not None:
            raise ValidationError(
                f"Certificate {old.credential_id} was already reissued as "
                f"{successor.credential_id}."
            )

        fields = dict(updated_fields or {})
        old = self.revoke(old.credential_id, reason or "Reissued", actor=actor)
        issued = self.issue(
            track_id=fields.get("trackId") or old.track_id,
            title=fields.get("title") or old.title,
            user=old.user,
            score=fields["score"] if fields.get("score") is not None else old.score,
            recipient_name=fields.get("recipientName") or old.recipient_name,
            reissued_from=old.credential_id,
            actor=actor,
        )

        logger.info(
            "Reissued certificate %s as %s",
            old.credential_id,
            issued.certificate.credential_id,
            extra={
                "user_id": _actor_id(actor),
                "context": {
                    "action": "certificate.reissued",
                    "old_credential_id": old.credential_id,
                    "new_credential_id": issued.certificate.credential_id,
                },
            },
        )
        return ReissuedCertificate(
            old_certificate=old,
            new_certificate=issued.certificate,
            pdf_bytes=issued.pdf_bytes,
        )


def get_certificate_service() -> CertificateService:
    """Compose the service from settings-configured collaborators."""

    return CertificateService()


__all__ = [
    "CertificateService",
    "IssuedCertificate",
    "ReissuedCertificate",
    "VerificationResult",
    "get_certificate_service",
]
