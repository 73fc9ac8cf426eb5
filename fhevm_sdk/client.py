"""
Main FHEVM client
Composes the encryption, decryption and contract helpers behind one lifecycle
"""
import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Union

from .chain.contract import ContractHelper
from .chain.network import get_network_settings
from .common.logging_config import LoggedOperation
from .common.single_flight import SingleFlight
from .errors import ClientDisposedError, InitializationError
from .fhe.backend import InstanceConfig, create_instance
from .fhe.decryption import DecryptionService
from .fhe.encryption import EncryptionService
from .types import ClientConfig, ClientState, ClientStateSnapshot

logger = logging.getLogger(__name__)


class FhevmClient:
    """Lifecycle state machine: UNINITIALIZED -> INITIALIZING -> READY, DISPOSED is terminal

    Example:
        >>> client = FhevmClient(ClientConfig(provider=w3, signer=signer, network="sepolia",
        ...                                   gateway_url="https://gateway.example"))
        >>> await client.initialize()
        >>> encrypted = await client.encryption.encrypt_u32(500, options)
    """

    def __init__(self, config: Union[ClientConfig, Dict[str, Any]]):
        if not isinstance(config, ClientConfig):
            config = ClientConfig(**config)
        self.config = config
        self._state = ClientState.UNINITIALIZED
        self._init_flight = SingleFlight()

        self.encryption = EncryptionService(self)
        self.decryption = DecryptionService(self)
        self.contracts = ContractHelper(self)

    @property
    def state(self) -> ClientState:
        return self._state

    async def initialize(self) -> None:
        """Initialize both services

        Idempotent once READY. Concurrent callers await the same in-flight
        attempt, so the backend is constructed once. On failure the services
        are reset and the client returns to UNINITIALIZED, ready for a retry.
        """
        if self._state is ClientState.READY:
            return
        if self._state is ClientState.DISPOSED:
            raise ClientDisposedError("FhevmClient has been disposed; create a new client")
        self._state = ClientState.INITIALIZING
        await self._init_flight.run(self._initialize_services)

    async def _initialize_services(self) -> None:
        if self._state is ClientState.DISPOSED:
            raise ClientDisposedError("FhevmClient was disposed before initialization started")

        with LoggedOperation(logger, "client initialization", network=self.config.network):
            results = await asyncio.gather(
                self.encryption.initialize(),
                self.decryption.initialize(),
                return_exceptions=True
            )
            failures = [result for result in results if isinstance(result, BaseException)]

            if self._state is ClientState.DISPOSED:
                # dispose() ran while services were starting up
                self._release_services()
                raise ClientDisposedError("FhevmClient was disposed during initialization")

            if failures:
                self._release_services()
                self._state = ClientState.UNINITIALIZED
                cause = failures[0]
                raise InitializationError(f"Failed to initialize FHEVM client: {cause}") from cause

            self._state = ClientState.READY

    def get_state(self) -> ClientStateSnapshot:
        return ClientStateSnapshot(
            is_initialized=self._state is ClientState.READY,
            network=self.config.network,
            has_keys=self.encryption.has_keys(),
            user_address=getattr(self.config.signer, "address", None)
        )

    def get_provider(self) -> Any:
        return self.config.provider

    def get_signer(self):
        return self.config.signer

    def get_network(self) -> str:
        return self.config.network

    def get_gateway_url(self) -> Optional[str]:
        return self.config.gateway_url

    def get_acl_address(self) -> Optional[str]:
        return self.config.acl_address

    def is_initialized(self) -> bool:
        return self._state is ClientState.READY

    def get_instance_config(self) -> InstanceConfig:
        """Backend parameters resolved through the network table"""
        network_settings = get_network_settings(self.config.network)
        return InstanceConfig(
            chain_id=network_settings.chain_id,
            network_url=network_settings.rpc_url,
            gateway_url=self.config.gateway_url,
            acl_address=self.config.acl_address
        )

    def get_instance_factory(self) -> Callable:
        return self.config.instance_factory or create_instance

    def _release_services(self) -> None:
        self.encryption.dispose()
        self.decryption.dispose()

    def dispose(self) -> None:
        """Release backend handles; safe to call repeatedly and from any state"""
        if self._state is ClientState.DISPOSED:
            return
        self._release_services()
        self._state = ClientState.DISPOSED
        logger.info("FhevmClient disposed", extra={"network": self.config.network})

    async def __aenter__(self) -> "FhevmClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.dispose()
        return False

    def __repr__(self):
        return f"FhevmClient(network={self.config.network!r}, state={self._state.value})"
