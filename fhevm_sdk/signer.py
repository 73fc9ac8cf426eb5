"""Signer capability used for typed-data authorization and transactions"""
import logging
from typing import Any, Dict, List, Protocol, runtime_checkable

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_account.signers.local import LocalAccount

from .common.utils import bytes_to_hex

logger = logging.getLogger(__name__)


@runtime_checkable
class Signer(Protocol):
    """Anything that can sign EIP-712 typed data and transactions

    Wallet-backed implementations may block on user interaction for as long
    as the user takes to respond.
    """

    @property
    def address(self) -> str:
        ...

    async def sign_typed_data(
        self,
        domain: Dict[str, Any],
        types: Dict[str, List[Dict[str, str]]],
        message: Dict[str, Any]
    ) -> str:
        ...

    async def sign_transaction(self, transaction: Dict[str, Any]) -> bytes:
        ...


class LocalSigner:
    """Signer backed by an in-process private key"""

    def __init__(self, private_key: str):
        try:
            # Remove 0x prefix if present
            if private_key.startswith("0x"):
                private_key = private_key[2:]
            self.account: LocalAccount = Account.from_key(private_key)
        except Exception as e:
            raise ValueError(f"Invalid private key: {str(e)}") from e
        logger.info(f"Local signer configured: {self.account.address}")

    @property
    def address(self) -> str:
        return self.account.address

    async def sign_typed_data(self, domain, types, message) -> str:
        signable = encode_typed_data(
            domain_data=domain,
            message_types=types,
            message_data=message
        )
        signed = self.account.sign_message(signable)
        return bytes_to_hex(signed.signature, prefix=True)

    async def sign_transaction(self, transaction: Dict[str, Any]) -> bytes:
        return bytes(self.account.sign_transaction(transaction).raw_transaction)

    def __repr__(self):
        return f"LocalSigner(address={self.address})"
