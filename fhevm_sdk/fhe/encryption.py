"""
Encryption Service
Turns plaintext values into encrypted inputs bound to a (contract, user) pair
"""
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple, Union

from pydantic import ValidationError

from ..common.single_flight import SingleFlight
from ..errors import EncryptionError, EncryptionInitError, NotInitializedError
from ..types import EncryptedInput, EncryptOptions
from .backend import EncryptedInputBuilder, FhevmInstance

if TYPE_CHECKING:
    from ..client import FhevmClient

logger = logging.getLogger(__name__)

SUPPORTED_BIT_WIDTHS = (8, 16, 32, 64)


def validate_uint(value: Any, bits: int) -> int:
    """Reject anything that is not an int in [0, 2**bits)"""
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncryptionError(f"uint{bits} value must be an int, got {type(value).__name__}")
    upper = 2 ** bits
    if not 0 <= value < upper:
        raise EncryptionError(f"Value {value} out of range for uint{bits} (0 to {upper - 1})")
    return value


def validate_bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise EncryptionError(f"bool value must be a bool, got {type(value).__name__}")
    return value


class EncryptionSession:
    """One encrypted-input batch for a single (contract, user) pair

    Values are appended in order; ``encrypt()`` seals them into one proof and
    may be called exactly once. Sessions are not safe for concurrent mutation.
    """

    def __init__(self, builder: EncryptedInputBuilder, contract_address: str, user_address: str):
        self._builder = builder
        self.contract_address = contract_address
        self.user_address = user_address
        self._count = 0
        self._sealed = False

    def __len__(self) -> int:
        return self._count

    @property
    def sealed(self) -> bool:
        return self._sealed

    def _append(self, method: str, value: Any) -> "EncryptionSession":
        if self._sealed:
            raise EncryptionError("Encrypted input session has already been sealed")
        try:
            getattr(self._builder, method)(value)
        except Exception as e:
            raise EncryptionError(f"Failed to add value to encrypted input: {e}") from e
        self._count += 1
        return self

    def add_uint(self, value: int, bits: int) -> "EncryptionSession":
        if bits not in SUPPORTED_BIT_WIDTHS:
            raise EncryptionError(f"Unsupported bit width: {bits}")
        return self._append(f"add{bits}", validate_uint(value, bits))

    def add_u8(self, value: int) -> "EncryptionSession":
        return self.add_uint(value, 8)

    def add_u16(self, value: int) -> "EncryptionSession":
        return self.add_uint(value, 16)

    def add_u32(self, value: int) -> "EncryptionSession":
        return self.add_uint(value, 32)

    def add_u64(self, value: int) -> "EncryptionSession":
        return self.add_uint(value, 64)

    def add_bool(self, value: bool) -> "EncryptionSession":
        return self._append("add_bool", validate_bool(value))

    async def encrypt(self) -> EncryptedInput:
        """Produce ciphertext handles and the input proof"""
        if self._sealed:
            raise EncryptionError("Encrypted input session has already been sealed")
        if self._count == 0:
            raise EncryptionError("Cannot encrypt an empty input session")
        self._sealed = True

        try:
            raw = await self._builder.encrypt()
        except Exception as e:
            logger.error(f"Backend failed to seal encrypted input: {e}")
            raise EncryptionError(f"Failed to encrypt input: {e}") from e

        try:
            result = raw if isinstance(raw, EncryptedInput) else EncryptedInput.model_validate(raw)
        except ValidationError as e:
            raise EncryptionError(f"Backend returned a malformed encrypted input: {e}") from e

        if len(result.handles) != self._count:
            raise EncryptionError(
                f"Backend returned {len(result.handles)} handles for {self._count} values"
            )

        logger.debug(
            "Encrypted input sealed",
            extra={
                "contract": self.contract_address[:10] + "...",
                "values": self._count
            }
        )
        return result


class EncryptionService:
    """Owns the encryption backend handle and exposes typed encrypt operations"""

    def __init__(self, client: "FhevmClient"):
        self.client = client
        self._instance: Optional[FhevmInstance] = None
        self._initialized = False
        self._init_flight = SingleFlight()
        self._generation = 0

    async def initialize(self) -> None:
        """Construct the backend instance once; concurrent callers share the attempt"""
        if self._initialized:
            return
        await self._init_flight.run(self._create_instance)

    async def _create_instance(self) -> None:
        generation = self._generation
        config = self.client.get_instance_config()
        factory = self.client.get_instance_factory()

        try:
            instance = await factory(config)
        except Exception as e:
            logger.error(
                f"Failed to initialize encryption service: {e}",
                extra={"chain_id": config.chain_id, "gateway_url": config.gateway_url}
            )
            raise EncryptionInitError(f"Failed to initialize encryption service: {e}") from e

        if instance is None:
            raise EncryptionInitError("Backend factory returned no instance")
        if generation != self._generation:
            raise EncryptionInitError("Encryption service was disposed during initialization")

        self._instance = instance
        self._initialized = True
        logger.info("Encryption service initialized", extra={"chain_id": config.chain_id})

    def has_keys(self) -> bool:
        return self._initialized and self._instance is not None

    def create_encrypted_input(self, contract_address: str, user_address: str) -> EncryptionSession:
        """Open a new session scoped to (contract_address, user_address)"""
        if not self._initialized or self._instance is None:
            raise NotInitializedError("Encryption service not initialized")
        builder = self._instance.create_encrypted_input(contract_address, user_address)
        return EncryptionSession(builder, contract_address, user_address)

    @staticmethod
    def _resolve_target(options: Union[EncryptOptions, Dict[str, Any]]) -> Tuple[str, str]:
        try:
            if not isinstance(options, EncryptOptions):
                options = EncryptOptions.model_validate(options)
            return options.contract_address, options.user_address
        except ValueError as e:
            raise EncryptionError(f"Invalid encryption options: {e}") from e

    async def _encrypt_single(self, method: str, value: Any, options) -> EncryptedInput:
        contract_address, user_address = self._resolve_target(options)
        session = self.create_encrypted_input(contract_address, user_address)
        getattr(session, method)(value)
        return await session.encrypt()

    async def encrypt_u8(self, value: int, options) -> EncryptedInput:
        validate_uint(value, 8)
        return await self._encrypt_single("add_u8", value, options)

    async def encrypt_u16(self, value: int, options) -> EncryptedInput:
        validate_uint(value, 16)
        return await self._encrypt_single("add_u16", value, options)

    async def encrypt_u32(self, value: int, options) -> EncryptedInput:
        validate_uint(value, 32)
        return await self._encrypt_single("add_u32", value, options)

    async def encrypt_u64(self, value: int, options) -> EncryptedInput:
        validate_uint(value, 64)
        return await self._encrypt_single("add_u64", value, options)

    async def encrypt_bool(self, value: bool, options) -> EncryptedInput:
        validate_bool(value)
        return await self._encrypt_single("add_bool", value, options)

    def get_public_key(self) -> Optional[str]:
        """FHE public key, or None before initialization"""
        if self._instance is None:
            return None
        try:
            return self._instance.get_public_key()
        except Exception as e:
            logger.warning(f"Backend could not provide a public key: {e}")
            return None

    def dispose(self) -> None:
        self._generation += 1
        self._instance = None
        self._initialized = False
        # A build still in flight belongs to the disposed generation
        self._init_flight = SingleFlight()
