"""Network table mapping named networks to chain ids and RPC endpoints"""
import os
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)


class NetworkConfig(Enum):
    """Supported network configurations"""
    LOCALHOST = "localhost"
    SEPOLIA = "sepolia"
    MAINNET = "mainnet"


@dataclass(frozen=True)
class NetworkSettings:
    """Network-specific settings"""
    chain_id: int
    rpc_url: str
    explorer_url: Optional[str] = None
    confirmation_blocks: int = 1


DEFAULT_NETWORK = NetworkConfig.LOCALHOST


def _settings_map() -> Dict[NetworkConfig, NetworkSettings]:
    # Built per call so RPC overrides in the environment are picked up
    return {
        NetworkConfig.LOCALHOST: NetworkSettings(
            chain_id=31337,
            rpc_url=os.getenv("LOCALHOST_RPC_URL", "http://127.0.0.1:8545"),
            confirmation_blocks=1
        ),
        NetworkConfig.SEPOLIA: NetworkSettings(
            chain_id=11155111,
            rpc_url=os.getenv("SEPOLIA_RPC_URL", "https://sepolia.infura.io/v3/"),
            explorer_url="https://sepolia.etherscan.io",
            confirmation_blocks=2
        ),
        NetworkConfig.MAINNET: NetworkSettings(
            chain_id=1,
            rpc_url=os.getenv("MAINNET_RPC_URL", "https://mainnet.infura.io/v3/"),
            explorer_url="https://etherscan.io",
            confirmation_blocks=6
        ),
    }


def resolve_network(network: Union[NetworkConfig, str, None]) -> NetworkConfig:
    """Map a network name to its enum member, falling back to localhost

    Unknown names are accepted so that custom deployments keep working, but
    the fallback is logged because it silently targets a local chain.
    """
    if isinstance(network, NetworkConfig):
        return network
    if not network:
        return DEFAULT_NETWORK
    try:
        return NetworkConfig(network.strip().lower())
    except ValueError:
        logger.warning(
            f"Unknown network '{network}', falling back to {DEFAULT_NETWORK.value}",
            extra={"network": network}
        )
        return DEFAULT_NETWORK


def get_network_settings(network: Union[NetworkConfig, str, None]) -> NetworkSettings:
    """Get network-specific settings"""
    return _settings_map()[resolve_network(network)]


def get_chain_id(network: Union[NetworkConfig, str, None]) -> int:
    return get_network_settings(network).chain_id


def get_network_url(network: Union[NetworkConfig, str, None]) -> str:
    return get_network_settings(network).rpc_url
