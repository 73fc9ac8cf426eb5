"""Exception hierarchy for the FHEVM SDK

Every layer re-raises failures as one of these types with the original
exception chained as ``__cause__``.
"""


class FhevmError(Exception):
    """Base class for all SDK errors"""


class InitializationError(FhevmError):
    """Backend or service setup failed"""


class EncryptionInitError(InitializationError):
    """The encryption backend could not be constructed"""


class ClientDisposedError(InitializationError):
    """The client was disposed and must be recreated"""


class NotInitializedError(FhevmError):
    """Operation attempted before the owning service was ready"""


class SignerRequiredError(FhevmError):
    """Decryption or transaction attempted without a signer"""


class EncryptionError(FhevmError):
    """Value validation, encoding or sealing failed"""


class DecryptionError(FhevmError):
    """Signature request or gateway round trip failed"""


class ContractCallError(FhevmError):
    """View call or transaction failed"""
