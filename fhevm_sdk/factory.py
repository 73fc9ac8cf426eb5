"""Factory helpers, the usual entry point for applications"""
from typing import Any, Dict, Union

from .client import FhevmClient
from .types import ClientConfig


async def create_fhevm_client(config: Union[ClientConfig, Dict[str, Any]]) -> FhevmClient:
    """Create and initialize a client

    Example:
        >>> client = await create_fhevm_client(ClientConfig(provider=w3, network="sepolia"))
    """
    client = FhevmClient(config)
    await client.initialize()
    return client


def create_fhevm_client_sync(config: Union[ClientConfig, Dict[str, Any]]) -> FhevmClient:
    """Create a client without initializing it, to control initialization timing"""
    return FhevmClient(config)
