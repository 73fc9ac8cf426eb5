"""
Chain-facing helpers: network table and contract helper
"""
from .contract import ContractHelper, SignedContract, call_contract_function
from .network import (
    NetworkConfig,
    NetworkSettings,
    get_chain_id,
    get_network_settings,
    get_network_url,
    resolve_network,
)

__all__ = [
    'ContractHelper',
    'SignedContract',
    'call_contract_function',
    'NetworkConfig',
    'NetworkSettings',
    'get_chain_id',
    'get_network_settings',
    'get_network_url',
    'resolve_network',
]
