"""Shared data model for the FHEVM SDK"""
from enum import Enum
from typing import Any, Callable, Generic, Optional, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from web3 import Web3

from .config import Settings, get_settings
from .signer import Signer

T = TypeVar("T")

UINT256_LIMIT = 2 ** 256


def _checksum(value: Any, field: str) -> str:
    """Validate and convert address to checksum format"""
    if not isinstance(value, str) or not Web3.is_address(value):
        raise ValueError(f"{field} must be a valid Ethereum address, got {value!r}")
    return Web3.to_checksum_address(value)


def _to_hex(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return value


class ClientState(str, Enum):
    """Client lifecycle states"""
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    DISPOSED = "disposed"  # terminal


class ClientConfig(BaseModel):
    """Immutable configuration passed to FhevmClient"""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    provider: Any
    signer: Optional[Any] = None
    network: str = "localhost"
    gateway_url: Optional[str] = None
    acl_address: Optional[str] = None
    # async (InstanceConfig) -> FhevmInstance; defaults to the gateway-backed backend
    instance_factory: Optional[Callable[..., Any]] = None

    @field_validator("signer")
    @classmethod
    def _check_signer(cls, v):
        if v is not None and not isinstance(v, Signer):
            raise ValueError("signer must provide address, sign_typed_data and sign_transaction")
        return v

    @field_validator("network", mode="before")
    @classmethod
    def _default_network(cls, v):
        return v or "localhost"

    @field_validator("gateway_url")
    @classmethod
    def _strip_gateway(cls, v):
        return v.rstrip("/") if v else None

    @field_validator("acl_address")
    @classmethod
    def _check_acl(cls, v):
        return _checksum(v, "acl_address") if v else None

    @classmethod
    def from_settings(
        cls,
        provider: Any,
        signer: Optional[Any] = None,
        settings: Optional[Settings] = None,
        **overrides
    ) -> "ClientConfig":
        """Build a config whose network, gateway and ACL come from Settings"""
        settings = settings or get_settings()
        values = {
            "provider": provider,
            "signer": signer,
            "network": settings.network,
            "gateway_url": settings.gateway_url,
            "acl_address": settings.acl_address,
        }
        values.update(overrides)
        return cls(**values)


class ClientStateSnapshot(BaseModel):
    """Point-in-time view returned by FhevmClient.get_state()"""
    model_config = ConfigDict(frozen=True)

    is_initialized: bool
    network: str
    has_keys: bool
    user_address: Optional[str] = None


class EncryptOptions(BaseModel):
    """Target of an encrypted input: a contract (or its address) and the user"""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    contract: Any
    user_address: str

    @field_validator("user_address")
    @classmethod
    def _check_user(cls, v):
        return _checksum(v, "user_address")

    @property
    def contract_address(self) -> str:
        target = self.contract if isinstance(self.contract, str) else getattr(self.contract, "address", None)
        return _checksum(target, "contract")


class EncryptedInput(BaseModel):
    """Handles and proof produced by sealing one encrypted-input session"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    handles: Tuple[str, ...]
    input_proof: str = Field(..., alias="inputProof")

    @field_validator("handles", mode="before")
    @classmethod
    def _hex_handles(cls, v):
        # A lone string would otherwise be split into characters
        if isinstance(v, (str, bytes, bytearray)):
            raise ValueError("handles must be a sequence of handles, not a single value")
        return tuple(_to_hex(handle) for handle in v)

    @field_validator("input_proof", mode="before")
    @classmethod
    def _hex_proof(cls, v):
        v = _to_hex(v)
        if isinstance(v, str) and v.lower() in ("", "0x"):
            raise ValueError("inputProof must not be empty")
        return v


class DecryptionRequest(BaseModel):
    """A chain-side ciphertext handle and the (contract, user) pair allowed to read it"""
    model_config = ConfigDict(frozen=True)

    contract_address: str
    user_address: str
    handle: int

    @field_validator("contract_address")
    @classmethod
    def _check_contract(cls, v):
        return _checksum(v, "contract_address")

    @field_validator("user_address")
    @classmethod
    def _check_user(cls, v):
        return _checksum(v, "user_address")

    @field_validator("handle", mode="before")
    @classmethod
    def _parse_handle(cls, v):
        if isinstance(v, bool):
            raise ValueError("handle must be an integer, not a bool")
        if isinstance(v, (bytes, bytearray)):
            v = int.from_bytes(v, "big")
        elif isinstance(v, str):
            v = int(v, 16) if v.lower().startswith("0x") else int(v)
        if not isinstance(v, int) or not 0 <= v < UINT256_LIMIT:
            raise ValueError("handle must be a uint256")
        return v


class DecryptionResult(BaseModel, Generic[T]):
    """Plaintext plus the local wall-clock time (ms) the decryption completed"""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    value: T
    timestamp: int


class BatchDecryptionItem(BaseModel):
    """Outcome of one request in a partial-results batch"""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    request: DecryptionRequest
    result: Optional[DecryptionResult] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
