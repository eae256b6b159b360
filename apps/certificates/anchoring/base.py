"""Interface shared by chain anchor backends."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class TransactionReceipt:
    """Confirmation details for an anchoring transaction."""

    tx_hash: str
    block_number: int | None = None
    status: int = 1


@dataclass(frozen=True)
class OnChainRecord:
    """Registry entry as reported by the anchor backend."""

    credential_id: str
    title: str
    track_id: str
    owner_address: str
    issued_at: datetime | None = None
    revoked: bool = False
    tx_hash: str = ""
    block_number: int | None = None

    def as_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["issued_at"] = self.issued_at.isoformat() if self.issued_at else None
        return payload


class ChainAnchorClient(ABC):
    """Records credentials on an external tamper-evident ledger.

    Implementations must only return from :meth:`issue_on_chain` once the
    write is confirmed, and must raise
    :class:`~apps.certificates.exceptions.ChainAnchorError` for provider,
    revert and confirmation-timeout failures.
    """

    default_owner_address: str = ""

    def __init__(self, *, confirmation_timeout: float = 120, **options: Any):
        self.confirmation_timeout = confirmation_timeout
        self.options = options

    @abstractmethod
    def issue_on_chain(
        self,
        credential_id: str,
        title: str,
        track_id: str,
        owner_address: str,
    ) -> TransactionReceipt:
        """Anchor a credential and wait for confirmation."""

    @abstractmethod
    def verify_on_chain(self, credential_id: str) -> OnChainRecord | None:
        """Return the anchored record, or ``None`` when nothing was anchored."""

    @abstractmethod
    def revoke_on_chain(self, credential_id: str) -> TransactionReceipt:
        """Flag an anchored credential as revoked on the ledger."""


__all__ = ["ChainAnchorClient", "OnChainRecord", "TransactionReceipt"]
