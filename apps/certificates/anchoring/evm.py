"""Anchor credentials in an EVM certificate registry contract."""
from __future__ import annotations

import logging
from datetime import datetime, timezone as dt_timezone
from typing import Any

import requests
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from ..exceptions import ChainAnchorError
from .base import ChainAnchorClient, OnChainRecord, TransactionReceipt

logger = logging.getLogger(__name__)

_PROVIDER_ERRORS = (Web3Exception, requests.exceptions.RequestException, ConnectionError)

CERTIFICATE_REGISTRY_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "issueCertificate",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "credentialId", "type": "string"},
            {"name": "title", "type": "string"},
            {"name": "trackId", "type": "string"},
            {"name": "owner", "type": "address"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "revokeCertificate",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "credentialId", "type": "string"}],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "certificates",
        "stateMutability": "view",
        "inputs": [{"name": "credentialId", "type": "string"}],
        "outputs": [
            {"name": "credentialId", "type": "string"},
            {"name": "title", "type": "string"},
            {"name": "trackId", "type": "string"},
            {"name": "owner", "type": "address"},
            {"name": "issuedAt", "type": "uint256"},
            {"name": "revoked", "type": "bool"},
        ],
    },
]


class Web3AnchorClient(ChainAnchorClient):
    """Submit registry transactions signed by the configured issuer key."""

    def __init__(
        self,
        *,
        rpc_url: str = "",
        contract_address: str = "",
        private_key: str = "",
        abi: list[dict[str, Any]] | None = None,
        confirmation_timeout: float = 120,
        poll_latency: float = 0.5,
        request_timeout: float = 30,
        web3: Web3 | None = None,
        **options: Any,
    ):
        super().__init__(confirmation_timeout=confirmation_timeout, **options)
        if not contract_address or not private_key:
            raise ValueError("contract_address and private_key are required.")

        self.web3 = web3 or Web3(
            Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout})
        )
        self.poll_latency = poll_latency
        self.account = self.web3.eth.account.from_key(private_key)
        self.contract = self.web3.eth.contract(
            address=Web3.to_checksum_address(contract_address),
            abi=abi or CERTIFICATE_REGISTRY_ABI,
        )

    @property
    def default_owner_address(self) -> str:  # type: ignore[override]
        return self.account.address

    def _transact(self, function, *, action: str) -> TransactionReceipt:
        try:
            transaction = function.build_transaction(
                {
                    "from": self.account.address,
                    "nonce": self.web3.eth.get_transaction_count(
                        self.account.address, "pending"
                    ),
                }
            )
            signed = self.account.sign_transaction(transaction)
            raw_hash = self.web3.eth.send_raw_transaction(signed.raw_transaction)
        except ContractLogicError as exc:
            raise ChainAnchorError(
                f"Registry rejected {action}.", cause=exc, retryable=False
            ) from exc
        except _PROVIDER_ERRORS as exc:
            raise ChainAnchorError(
                f"Chain provider unavailable during {action}.", cause=exc
            ) from exc

        tx_hash = Web3.to_hex(raw_hash)
        try:
            receipt = self.web3.eth.wait_for_transaction_receipt(
                raw_hash,
                timeout=self.confirmation_timeout,
                poll_latency=self.poll_latency,
            )
        except TimeExhausted as exc:
            raise ChainAnchorError(
                f"Transaction {tx_hash} was not confirmed within "
                f"{self.confirmation_timeout} seconds.",
                cause=exc,
                tx_hash=tx_hash,
            ) from exc
        except _PROVIDER_ERRORS as exc:
            raise ChainAnchorError(
                f"Lost contact with chain provider while awaiting {tx_hash}.",
                cause=exc,
                tx_hash=tx_hash,
            ) from exc

        if receipt["status"] != 1:
            raise ChainAnchorError(
                f"Transaction {tx_hash} reverted during {action}.",
                tx_hash=tx_hash,
                retryable=False,
            )

        return TransactionReceipt(
            tx_hash=tx_hash,
            block_number=receipt["blockNumber"],
            status=receipt["status"],
        )

    def issue_on_chain(self, credential_id, title, track_id, owner_address):
        owner = Web3.to_checksum_address(owner_address or self.default_owner_address)
        function = self.contract.functions.issueCertificate(
            credential_id, title, track_id, owner
        )
        receipt = self._transact(function, action="issue")
        logger.info(
            "Anchored %s in block %s (%s)",
            credential_id,
            receipt.block_number,
            receipt.tx_hash,
        )
        return receipt

    def verify_on_chain(self, credential_id):
        try:
            stored_id, title, track_id, owner, issued_at, revoked = (
                self.contract.functions.certificates(credential_id).call()
            )
        except ContractLogicError:
            return None
        except _PROVIDER_ERRORS as exc:
            raise ChainAnchorError("Chain provider unavailable during verify.", cause=exc) from exc

        if not stored_id or not issued_at:
            return None

        return OnChainRecord(
            credential_id=stored_id,
            title=title,
            track_id=track_id,
            owner_address=owner,
            issued_at=datetime.fromtimestamp(issued_at, tz=dt_timezone.utc),
            revoked=bool(revoked),
        )

    def revoke_on_chain(self, credential_id):
        function = self.contract.functions.revokeCertificate(credential_id)
        return self._transact(function, action="revoke")


__all__ = ["CERTIFICATE_REGISTRY_ABI", "Web3AnchorClient"]
