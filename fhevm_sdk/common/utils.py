"""Utility functions for the FHEVM SDK"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar, Union

import backoff
from hexbytes import HexBytes
from web3.exceptions import ContractLogicError

from ..config import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

USER_REJECTED_CODE = 4001
INTERNAL_RPC_ERROR_CODE = -32603


def _strip_hex_prefix(value: str) -> str:
    return value[2:] if value[:2] in ("0x", "0X") else value


def hex_to_bytes(value: str) -> bytes:
    """Convert a hex string (with or without 0x prefix) to bytes"""
    digits = _strip_hex_prefix(value)
    if len(digits) % 2:
        raise ValueError(f"Hex string has odd length: {value!r}")
    return bytes.fromhex(digits)


def bytes_to_hex(data: bytes, prefix: bool = False) -> str:
    """Convert bytes to a lowercase hex string"""
    digits = bytes(data).hex()
    return "0x" + digits if prefix else digits


def format_error(error: Any) -> str:
    """Turn a wallet or RPC error into a short human readable message"""
    if isinstance(error, dict):
        code = error.get("code")
        message = error.get("message")
    else:
        code = getattr(error, "code", None)
        message = getattr(error, "message", None) or (str(error) if isinstance(error, Exception) else None)

    if code == USER_REJECTED_CODE:
        return "Transaction rejected by user"
    elif code == INTERNAL_RPC_ERROR_CODE:
        return "Internal JSON-RPC error"
    elif message:
        return message
    return "Unknown error occurred"


async def wait_for_transaction(
    w3,
    tx_hash: Union[HexBytes, bytes, str],
    confirmations: int = 1,
    timeout: float = 120,
    poll_latency: float = 2
):
    """Wait for a transaction receipt and the requested number of confirmations"""
    receipt = await w3.eth.wait_for_transaction_receipt(
        tx_hash,
        timeout=timeout,
        poll_latency=poll_latency
    )

    if receipt['status'] == 0:
        raise ContractLogicError(f"Transaction failed: {HexBytes(tx_hash).hex()}")

    if confirmations > 1:
        target_block = receipt['blockNumber'] + confirmations - 1
        while await w3.eth.block_number < target_block:
            await asyncio.sleep(poll_latency)

    return receipt


async def retry(
    fn: Callable[[], Awaitable[T]],
    max_retries: Optional[int] = None,
    delay: Optional[float] = None,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,)
) -> T:
    """Run ``fn`` until it succeeds or ``max_retries`` attempts have failed

    Nothing inside the SDK retries on its own; wrap an operation explicitly:

        result = await retry(lambda: client.decryption.user_decrypt(request))

    The last error propagates unchanged.
    """
    settings = get_settings()
    max_tries = settings.retry_max_tries if max_retries is None else max_retries
    interval = settings.retry_delay if delay is None else delay
    if max_tries < 1:
        raise ValueError("max_retries must be at least 1")

    @backoff.on_exception(
        backoff.constant,
        exceptions,
        max_tries=max_tries,
        interval=interval,
        jitter=None,
        logger=logger
    )
    async def _attempt():
        return await fn()

    return await _attempt()
