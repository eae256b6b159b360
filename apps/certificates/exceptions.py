"""Error taxonomy for the certificate lifecycle."""
from __future__ import annotations


class CertificateError(Exception):
    """Base class for lifecycle failures surfaced to callers."""

    status_code = 500
    default_message = "Certificate operation failed."

    def __init__(self, message: str | None = None, *, details: str | None = None):
        super().__init__(message or self.default_message)
        self.details = details

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(CertificateError):
    """Raised when a request is missing fields or carries invalid values."""

    status_code = 400
    default_message = "Missing fields"


class NotFoundError(CertificateError):
    """Raised when a credential id or record id is unknown."""

    status_code = 404
    default_message = "Certificate not found"


class ChainAnchorError(CertificateError):
    """Raised when the anchor ledger or chain provider rejects or times out.

    ``tx_hash`` is populated once a transaction has been submitted, which
    means its final state on the ledger is unknown to the caller.
    """

    status_code = 502
    default_message = "Blockchain anchoring failed."

    def __init__(
        self,
        message: str | None = None,
        *,
        cause: BaseException | None = None,
        tx_hash: str | None = None,
        retryable: bool = True,
    ):
        details = f"{type(cause).__name__}: {cause}" if cause is not None else None
        super().__init__(message, details=details)
        self.cause = cause
        self.tx_hash = tx_hash
        self.retryable = retryable
        if cause is not None:
            self.__cause__ = cause


class CertificateIssuanceError(CertificateError):
    """Raised when issuing stops before anything was persisted."""

    default_message = "Failed to issue certificate."

    def __init__(
        self,
        message: str | None = None,
        *,
        details: str | None = None,
        retryable: bool = False,
    ):
        super().__init__(message, details=details)
        self.retryable = retryable


class TemplateNotFoundError(CertificateError):
    """Raised when a certificate template cannot be resolved."""

    default_message = "Certificate template not found."


class TemplateRenderError(CertificateError):
    """Raised when template data is incomplete or the template is broken."""

    default_message = "Certificate template could not be rendered."


class StoreWriteError(CertificateError):
    """Raised when the certificate record or its PDF cannot be persisted."""

    default_message = "Failed to persist certificate."


class DuplicateCredentialError(StoreWriteError):
    """Raised when a credential id is already taken."""

    default_message = "Credential id already exists."


__all__ = [
    "CertificateError",
    "CertificateIssuanceError",
    "ChainAnchorError",
    "DuplicateCredentialError",
    "NotFoundError",
    "StoreWriteError",
    "TemplateNotFoundError",
    "TemplateRenderError",
    "ValidationError",
]
