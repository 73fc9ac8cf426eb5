"""
Decryption Service
Authorized user decryption (EIP-712 signature + gateway) and public view reads
"""
import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Union

from ..chain.contract import call_contract_function
from ..common.logging_config import LoggedOperation
from ..common.single_flight import SingleFlight
from ..config import get_settings
from ..errors import DecryptionError, NotInitializedError, SignerRequiredError
from ..types import BatchDecryptionItem, DecryptionRequest, DecryptionResult
from .backend import FhevmInstance
from .authorization import PRIMARY_TYPE

if TYPE_CHECKING:
    from ..client import FhevmClient
    from ..signer import Signer

logger = logging.getLogger(__name__)

_UNSET = object()


def _now_ms() -> int:
    return int(time.time() * 1000)


class DecryptionService:
    """Builds authorization handshakes and dispatches decryption requests

    The backend used for re-encryption is built lazily on first use and then
    shared by every call; it is separate from the encryption backend.
    """

    def __init__(self, client: "FhevmClient"):
        self.client = client
        self._initialized = False
        self._instance: Optional[FhevmInstance] = None
        self._instance_flight = SingleFlight()
        self._generation = 0

    async def initialize(self) -> None:
        if self._initialized:
            return
        self._initialized = True

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise NotInitializedError("Decryption service not initialized")

    async def _get_instance(self) -> FhevmInstance:
        if self._instance is not None:
            return self._instance
        return await self._instance_flight.run(self._build_instance)

    async def _build_instance(self) -> FhevmInstance:
        generation = self._generation
        config = self.client.get_instance_config()
        instance = await self.client.get_instance_factory()(config)
        if generation != self._generation:
            raise DecryptionError("Decryption service was disposed while its backend was being built")
        self._instance = instance
        logger.info("Decryption backend ready", extra={"chain_id": config.chain_id})
        return instance

    @staticmethod
    def _coerce_request(request: Union[DecryptionRequest, Dict[str, Any]]) -> DecryptionRequest:
        if isinstance(request, DecryptionRequest):
            return request
        try:
            return DecryptionRequest.model_validate(request)
        except ValueError as e:
            raise DecryptionError(f"Invalid decryption request: {e}") from e

    def _resolve_timeout(self, timeout) -> Optional[float]:
        return get_settings().decrypt_timeout if timeout is _UNSET else timeout

    async def _authorize_and_decrypt(self, request: DecryptionRequest, signer: "Signer") -> Any:
        instance = await self._get_instance()

        # Authorization artifact binding the (contract, user) pair
        eip712 = instance.create_eip712(request.contract_address, request.user_address)

        signature = await signer.sign_typed_data(
            eip712["domain"],
            {PRIMARY_TYPE: eip712["types"][PRIMARY_TYPE]},
            eip712["message"]
        )

        # Gateway verifies signature and ACL permission before returning plaintext
        return await instance.reencrypt(
            request.handle,
            request.contract_address,
            request.user_address,
            signature
        )

    async def user_decrypt(
        self,
        request: Union[DecryptionRequest, Dict[str, Any]],
        timeout: Optional[float] = _UNSET
    ) -> DecryptionResult:
        """Decrypt a handle on behalf of ``request.user_address``

        Args:
            request: Contract address, user address and chain-side handle
            timeout: Seconds allowed for backend setup, signature and gateway
                round trip together; None waits indefinitely. Defaults to
                ``Settings.decrypt_timeout``.

        Returns:
            DecryptionResult with the plaintext and a local timestamp in ms

        Raises:
            SignerRequiredError: no signer configured (checked before any I/O)
            NotInitializedError: service not initialized
            DecryptionError: any failure of the handshake or gateway call
        """
        signer = self.client.get_signer()
        if signer is None:
            raise SignerRequiredError("Signer required for user decryption")
        self._require_initialized()

        request = self._coerce_request(request)
        timeout = self._resolve_timeout(timeout)

        with LoggedOperation(
            logger,
            "user decryption",
            contract=request.contract_address[:10] + "...",
            user=request.user_address[:10] + "..."
        ):
            try:
                if timeout is None:
                    value = await self._authorize_and_decrypt(request, signer)
                else:
                    value = await asyncio.wait_for(
                        self._authorize_and_decrypt(request, signer),
                        timeout
                    )
            except DecryptionError:
                raise
            except asyncio.TimeoutError as e:
                raise DecryptionError(f"Decryption timed out after {timeout}s") from e
            except Exception as e:
                raise DecryptionError(f"Failed to decrypt value: {e}") from e

        return DecryptionResult(value=value, timestamp=_now_ms())

    async def public_decrypt(self, contract: Any, method_name: str, *args: Any) -> DecryptionResult:
        """Read a value the contract already exposes in cleartext; no signature involved"""
        self._require_initialized()
        try:
            value = await call_contract_function(contract, method_name, *args)
        except Exception as e:
            logger.error(f"Public decryption via {method_name} failed: {e}")
            raise DecryptionError(f"Failed to decrypt public value: {e}") from e
        return DecryptionResult(value=value, timestamp=_now_ms())

    async def batch_user_decrypt(
        self,
        requests: Iterable[Union[DecryptionRequest, Dict[str, Any]]],
        timeout: Optional[float] = _UNSET,
        allow_partial: Optional[bool] = None
    ) -> Union[List[DecryptionResult], List[BatchDecryptionItem]]:
        """Decrypt many handles concurrently, results in request order

        By default the batch is all-or-nothing: the first failure cancels the
        outstanding requests and is raised; no partial list is returned. With
        ``allow_partial`` (or ``Settings.batch_allow_partial``) every request is
        awaited and a BatchDecryptionItem per request is returned instead.
        """
        requests = [self._coerce_request(request) for request in requests]
        if not requests:
            return []
        if allow_partial is None:
            allow_partial = get_settings().batch_allow_partial

        tasks = [
            asyncio.ensure_future(self.user_decrypt(request, timeout=timeout))
            for request in requests
        ]

        if allow_partial:
            outcomes = await asyncio.gather(*tasks, return_exceptions=True)
            items = []
            for request, outcome in zip(requests, outcomes):
                if isinstance(outcome, BaseException):
                    items.append(BatchDecryptionItem(
                        request=request,
                        error=str(outcome),
                        error_type=type(outcome).__name__
                    ))
                else:
                    items.append(BatchDecryptionItem(request=request, result=outcome))
            failed = sum(1 for item in items if not item.ok)
            if failed:
                logger.warning(f"Batch decryption finished with {failed}/{len(items)} failures")
            return items

        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            # Let cancelled requests unwind before the failure propagates
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    def dispose(self) -> None:
        self._generation += 1
        self._instance = None
        self._initialized = False
        # A build still in flight belongs to the disposed generation
        self._instance_flight = SingleFlight()
