"""EIP-712 authorization message for user decryption

The signature over this structure is the only proof that ``user_address``
allows the gateway to re-encrypt handles of ``contract_address`` for it. Both
addresses are part of the signed message, so a signature cannot be replayed
for another contract or another user.
"""
from typing import Any, Dict, Optional

from web3 import Web3

AUTHORIZATION_DOMAIN_NAME = "Authorization token"
AUTHORIZATION_DOMAIN_VERSION = "1"
PRIMARY_TYPE = "Reencrypt"

REENCRYPT_TYPE = [
    {"name": "publicKey", "type": "bytes"},
    {"name": "contractAddress", "type": "address"},
    {"name": "userAddress", "type": "address"},
]


def build_reencrypt_typed_data(
    chain_id: int,
    contract_address: str,
    user_address: str,
    public_key: str,
    verifying_contract: Optional[str] = None
) -> Dict[str, Any]:
    """Build the ``{domain, types, primaryType, message}`` structure to sign

    The domain is bound to the ACL contract when one is configured, otherwise
    to the target contract itself.
    """
    contract_address = Web3.to_checksum_address(contract_address)
    user_address = Web3.to_checksum_address(user_address)
    if not public_key.startswith("0x"):
        public_key = "0x" + public_key

    return {
        "domain": {
            "name": AUTHORIZATION_DOMAIN_NAME,
            "version": AUTHORIZATION_DOMAIN_VERSION,
            "chainId": chain_id,
            "verifyingContract": Web3.to_checksum_address(verifying_contract or contract_address),
        },
        "types": {PRIMARY_TYPE: [dict(field) for field in REENCRYPT_TYPE]},
        "primaryType": PRIMARY_TYPE,
        "message": {
            "publicKey": public_key,
            "contractAddress": contract_address,
            "userAddress": user_address,
        },
    }
