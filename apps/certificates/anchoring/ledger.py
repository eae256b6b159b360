"""Database-backed anchor ledger.

Each credential event is appended as a block whose hash covers the block's
fields and the previous block's hash, so editing or removing any historical
entry breaks every later link. This gives the tamper evidence of an on-chain
registry without an external network dependency.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from django.db import DatabaseError, transaction
from django.utils import timezone

from ..exceptions import ChainAnchorError
from ..hashing import sha256_hex
from ..models import AnchorBlock
from .base import ChainAnchorClient, OnChainRecord, TransactionReceipt

GENESIS_HASH = "0" * 64

logger = logging.getLogger(__name__)


def compute_block_hash(
    *,
    sequence: int,
    kind: str,
    credential_id: str,
    title: str,
    track_id: str,
    owner_address: str,
    created_at: datetime,
    previous_hash: str,
) -> str:
    payload = "|".join(
        (
            str(sequence),
            kind,
            credential_id,
            title,
            track_id,
            owner_address,
            created_at.isoformat(),
            previous_hash,
        )
    )
    return sha256_hex(payload.encode("utf-8"))


def _hash_for(block: AnchorBlock) -> str:
    return compute_block_hash(
        sequence=block.sequence,
        kind=block.kind,
        credential_id=block.credential_id,
        title=block.title,
        track_id=block.track_id,
        owner_address=block.owner_address,
        created_at=block.created_at,
        previous_hash=block.previous_hash,
    )


def _tx_hash(block: AnchorBlock) -> str:
    return f"0x{block.block_hash}"


@dataclass(frozen=True)
class LedgerIntegrityReport:
    checked: int
    broken_at: int | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.broken_at is None


def verify_ledger() -> LedgerIntegrityReport:
    """Walk the ledger from genesis and report the first broken link."""

    expected_previous = GENESIS_HASH
    expected_sequence = 1
    checked = 0
    for block in AnchorBlock.objects.order_by("sequence").iterator():
        if block.sequence != expected_sequence:
            return LedgerIntegrityReport(
                checked, block.sequence, f"Expected sequence {expected_sequence}."
            )
        if block.previous_hash != expected_previous:
            return LedgerIntegrityReport(
                checked, block.sequence, "Previous hash does not match the chain."
            )
        if _hash_for(block) != block.block_hash:
            return LedgerIntegrityReport(
                checked, block.sequence, "Block contents do not match their hash."
            )
        expected_previous = block.block_hash
        expected_sequence += 1
        checked += 1
    return LedgerIntegrityReport(checked)


class LedgerAnchorClient(ChainAnchorClient):
    """Anchor credentials in the local :class:`AnchorBlock` ledger."""

    default_owner_address = "ledger:local"

    def _append(
        self,
        *,
        kind: str,
        credential_id: str,
        title: str = "",
        track_id: str = "",
        owner_address: str = "",
    ) -> AnchorBlock:
        try:
            with transaction.atomic():
                head = (
                    AnchorBlock.objects.select_for_update()
                    .order_by("-sequence")
                    .first()
                )
                sequence = head.sequence + 1 if head else 1
                previous_hash = head.block_hash if head else GENESIS_HASH
                created_at = timezone.now()
                block_hash = compute_block_hash(
                    sequence=sequence,
                    kind=kind,
                    credential_id=credential_id,
                    title=title,
                    track_id=track_id,
                    owner_address=owner_address,
                    created_at=created_at,
                    previous_hash=previous_hash,
                )
                return AnchorBlock.objects.create(
                    sequence=sequence,
                    kind=kind,
                    credential_id=credential_id,
                    title=title,
                    track_id=track_id,
                    owner_address=owner_address,
                    previous_hash=previous_hash,
                    block_hash=block_hash,
                    created_at=created_at,
                )
        except DatabaseError as exc:
            raise ChainAnchorError("Anchor ledger write failed.", cause=exc) from exc

    def _find(self, credential_id: str, kind: str) -> AnchorBlock | None:
        return AnchorBlock.objects.filter(
            credential_id=credential_id.strip().upper(), kind=kind
        ).first()

    def issue_on_chain(self, credential_id, title, track_id, owner_address):
        credential_id = credential_id.strip().upper()
        if self._find(credential_id, AnchorBlock.Kind.ISSUE):
            # Mirrors a registry revert on duplicate ids; nothing was written.
            raise ChainAnchorError(f"Credential {credential_id} is already anchored.")

        block = self._append(
            kind=AnchorBlock.Kind.ISSUE,
            credential_id=credential_id,
            title=title,
            track_id=track_id,
            owner_address=owner_address or self.default_owner_address,
        )
        logger.debug("Anchored %s in ledger block %s", credential_id, block.sequence)
        return TransactionReceipt(tx_hash=_tx_hash(block), block_number=block.sequence)

    def verify_on_chain(self, credential_id):
        issued = self._find(credential_id, AnchorBlock.Kind.ISSUE)
        if issued is None:
            return None

        revoked = self._find(credential_id, AnchorBlock.Kind.REVOKE)
        return OnChainRecord(
            credential_id=issued.credential_id,
            title=issued.title,
            track_id=issued.track_id,
            owner_address=issued.owner_address,
            issued_at=issued.created_at,
            revoked=revoked is not None,
            tx_hash=_tx_hash(issued),
            block_number=issued.sequence,
        )

    def revoke_on_chain(self, credential_id):
        if self._find(credential_id, AnchorBlock.Kind.ISSUE) is None:
            raise ChainAnchorError(
                f"Credential {credential_id} is not anchored.", retryable=False
            )

        existing = self._find(credential_id, AnchorBlock.Kind.REVOKE)
        if existing is not None:
            return TransactionReceipt(tx_hash=_tx_hash(existing), block_number=existing.sequence)

        block = self._append(
            kind=AnchorBlock.Kind.REVOKE,
            credential_id=credential_id.strip().upper(),
        )
        return TransactionReceipt(tx_hash=_tx_hash(block), block_number=block.sequence)


__all__ = [
    "GENESIS_HASH",
    "LedgerAnchorClient",
    "LedgerIntegrityReport",
    "compute_block_hash",
    "verify_ledger",
]
