from apps.certificates.anchoring.base import TransactionReceipt
from apps.certificates.anchoring.ledger import LedgerAnchorClient
from apps.certificates.exceptions import ChainAnchorError


class FailingAnchorClient(LedgerAnchorClient):
    """Ledger client whose issue calls fail a fixed number of times."""

    def __init__(self, failures=1, *, retryable=True, tx_hash=None, **options):
        super().__init__(**options)
        self.failures = failures
        self.retryable = retryable
        self.tx_hash = tx_hash
        self.attempted_ids = []

    def issue_on_chain(self, credential_id, title, track_id, owner_address):
        self.attempted_ids.append(credential_id)
        if self.failures > 0:
            self.failures -= 1
            raise ChainAnchorError(
                "RPC node unreachable",
                cause=ConnectionError("connection refused"),
                tx_hash=self.tx_hash,
                retryable=self.retryable,
            )
        return super().issue_on_chain(credential_id, title, track_id, owner_address)


class UnavailableAnchorClient(LedgerAnchorClient):
    def verify_on_chain(self, credential_id):
        raise ChainAnchorError("RPC node unreachable")


class PermissiveAnchorClient(LedgerAnchorClient):
    """Confirms every issue without checking for an existing anchor."""

    def __init__(self, **options):
        super().__init__(**options)
        self.confirmed = 0

    def issue_on_chain(self, credential_id, title, track_id, owner_address):
        self.confirmed += 1
        return TransactionReceipt(tx_hash=f"0x{self.confirmed:064x}", block_number=self.confirmed)
