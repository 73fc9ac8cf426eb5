"""
FHEVM SDK for Python

Client-side construction of encrypted inputs and authorized decryption for
confidential smart contracts.
"""
from .chain.contract import ContractHelper, SignedContract
from .chain.network import NetworkConfig, NetworkSettings, get_network_settings
from .client import FhevmClient
from .common.logging_config import configure_sdk_logging
from .common.utils import bytes_to_hex, format_error, hex_to_bytes, retry, wait_for_transaction
from .errors import (
    ClientDisposedError,
    ContractCallError,
    DecryptionError,
    EncryptionError,
    EncryptionInitError,
    FhevmError,
    InitializationError,
    NotInitializedError,
    SignerRequiredError,
)
from .factory import create_fhevm_client, create_fhevm_client_sync
from .fhe.backend import FhevmInstance, GatewayInstance, InstanceConfig, create_instance
from .fhe.decryption import DecryptionService
from .fhe.encryption import EncryptionService, EncryptionSession
from .signer import LocalSigner, Signer
from .types import (
    BatchDecryptionItem,
    ClientConfig,
    ClientState,
    ClientStateSnapshot,
    DecryptionRequest,
    DecryptionResult,
    EncryptedInput,
    EncryptOptions,
)

__version__ = "1.0.0"

__all__ = [
    'FhevmClient',
    'create_fhevm_client',
    'create_fhevm_client_sync',
    'EncryptionService',
    'EncryptionSession',
    'DecryptionService',
    'ContractHelper',
    'SignedContract',
    'NetworkConfig',
    'NetworkSettings',
    'get_network_settings',
    'FhevmInstance',
    'GatewayInstance',
    'InstanceConfig',
    'create_instance',
    'Signer',
    'LocalSigner',
    'BatchDecryptionItem',
    'ClientConfig',
    'ClientState',
    'ClientStateSnapshot',
    'DecryptionRequest',
    'DecryptionResult',
    'EncryptedInput',
    'EncryptOptions',
    'FhevmError',
    'InitializationError',
    'EncryptionInitError',
    'ClientDisposedError',
    'NotInitializedError',
    'SignerRequiredError',
    'EncryptionError',
    'DecryptionError',
    'ContractCallError',
    'bytes_to_hex',
    'format_error',
    'hex_to_bytes',
    'retry',
    'wait_for_transaction',
    'configure_sdk_logging',
]
