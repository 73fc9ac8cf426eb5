"""
Encryption and decryption services plus the FHE backend capability interface
"""
from .authorization import build_reencrypt_typed_data
from .backend import (
    EncryptedInputBuilder,
    FhevmInstance,
    GatewayInstance,
    InstanceConfig,
    create_instance,
)
from .decryption import DecryptionService
from .encryption import EncryptionService, EncryptionSession

__all__ = [
    'build_reencrypt_typed_data',
    'EncryptedInputBuilder',
    'FhevmInstance',
    'GatewayInstance',
    'InstanceConfig',
    'create_instance',
    'DecryptionService',
    'EncryptionService',
    'EncryptionSession',
]
