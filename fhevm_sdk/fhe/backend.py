"""
FHE backend capability interface and the default gateway-backed backend

The SDK never touches ciphertext math. It talks to a backend through the
narrow ``FhevmInstance`` protocol below; ``create_instance`` builds the default
implementation, which delegates sealing and re-encryption to the gateway over
HTTP. Any object satisfying the protocol can be plugged in through
``ClientConfig.instance_factory``.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

import httpx

from ..config import get_settings
from .authorization import build_reencrypt_typed_data

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstanceConfig:
    """Everything a backend needs to bind itself to one network"""
    chain_id: int
    network_url: str
    gateway_url: Optional[str] = None
    acl_address: Optional[str] = None


@runtime_checkable
class EncryptedInputBuilder(Protocol):
    """Backend session collecting plaintexts for one (contract, user) pair"""

    def add8(self, value: int) -> Any: ...

    def add16(self, value: int) -> Any: ...

    def add32(self, value: int) -> Any: ...

    def add64(self, value: int) -> Any: ...

    def add_bool(self, value: bool) -> Any: ...

    async def encrypt(self) -> Dict[str, Any]:
        """Return ``{"handles": [...], "inputProof": ...}``"""
        ...


@runtime_checkable
class FhevmInstance(Protocol):
    """Capability handle for an FHE backend"""

    def create_encrypted_input(self, contract_address: str, user_address: str) -> EncryptedInputBuilder: ...

    def get_public_key(self) -> Optional[str]: ...

    def create_eip712(self, contract_address: str, user_address: str) -> Dict[str, Any]: ...

    async def reencrypt(self, handle: int, contract_address: str, user_address: str, signature: str) -> Any: ...


class GatewayInputBuilder:
    """Collects typed values and seals them through the gateway input-proof endpoint"""

    def __init__(self, instance: "GatewayInstance", contract_address: str, user_address: str):
        self.instance = instance
        self.contract_address = contract_address
        self.user_address = user_address
        self.values: List[Dict[str, str]] = []

    def _add(self, fhe_type: str, value: int) -> "GatewayInputBuilder":
        self.values.append({"type": fhe_type, "value": str(int(value))})
        return self

    def add8(self, value: int):
        return self._add("euint8", value)

    def add16(self, value: int):
        return self._add("euint16", value)

    def add32(self, value: int):
        return self._add("euint32", value)

    def add64(self, value: int):
        return self._add("euint64", value)

    def add_bool(self, value: bool):
        return self._add("ebool", 1 if value else 0)

    async def encrypt(self) -> Dict[str, Any]:
        payload = {
            "chainId": self.instance.config.chain_id,
            "aclAddress": self.instance.config.acl_address,
            "contractAddress": self.contract_address,
            "userAddress": self.user_address,
            "values": self.values,
        }
        data = await self.instance.post("/input-proof", payload)
        return {"handles": data["handles"], "inputProof": data["inputProof"]}


class GatewayInstance:
    """Default backend: public key, input proofs and re-encryption come from the gateway"""

    def __init__(
        self,
        config: InstanceConfig,
        public_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.config = config
        self.public_key = public_key
        self.timeout = timeout
        self.transport = transport

    @staticmethod
    def _base_url(config: InstanceConfig) -> str:
        if not config.gateway_url:
            raise ValueError("gateway_url is required for the gateway backend")
        return config.gateway_url.rstrip("/")

    @classmethod
    async def create(
        cls,
        config: InstanceConfig,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "GatewayInstance":
        """Fetch the network public key and return a ready instance"""
        timeout = get_settings().request_timeout if timeout is None else timeout
        base_url = cls._base_url(config)

        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(f"{base_url}/keys")
            response.raise_for_status()
            public_key = response.json()["publicKey"]

        logger.info(
            "Gateway backend ready",
            extra={
                "chain_id": config.chain_id,
                "gateway_url": base_url,
                "public_key_prefix": public_key[:10] + "..."
            }
        )
        return cls(config, public_key, timeout=timeout, transport=transport)

    async def post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self._base_url(self.config)}{path}"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(url, json=payload)
            response.raise_for_status()
            return response.json()

    def create_encrypted_input(self, contract_address: str, user_address: str) -> GatewayInputBuilder:
        return GatewayInputBuilder(self, contract_address, user_address)

    def get_public_key(self) -> Optional[str]:
        return self.public_key

    def create_eip712(self, contract_address: str, user_address: str) -> Dict[str, Any]:
        return build_reencrypt_typed_data(
            chain_id=self.config.chain_id,
            contract_address=contract_address,
            user_address=user_address,
            public_key=self.public_key,
            verifying_contract=self.config.acl_address
        )

    async def reencrypt(self, handle: int, contract_address: str, user_address: str, signature: str) -> Any:
        payload = {
            "handle": "0x" + format(handle, "064x"),
            "contractAddress": contract_address,
            "userAddress": user_address,
            "signature": signature,
            "publicKey": self.public_key,
        }
        data = await self.post("/reencrypt", payload)
        value = data["value"]
        # Gateways serialize large integers as decimal strings
        if isinstance(value, str) and value.isdigit():
            return int(value)
        return value


async def create_instance(config: InstanceConfig) -> FhevmInstance:
    """Default ``instance_factory``"""
    return await GatewayInstance.create(config)
