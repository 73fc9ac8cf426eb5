"""Contract helper for submitting encrypted inputs and reading view state"""
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from web3 import Web3

from ..common.utils import wait_for_transaction
from ..errors import ContractCallError, SignerRequiredError
from ..signer import Signer
from ..types import EncryptedInput

if TYPE_CHECKING:
    from ..client import FhevmClient

logger = logging.getLogger(__name__)


@dataclass
class SignedContract:
    """A web3 contract paired with the signer that sends its transactions"""
    contract: Any
    signer: Signer

    @property
    def address(self) -> str:
        return self.contract.address

    @property
    def functions(self):
        return self.contract.functions


def _web3_contract(contract: Any) -> Any:
    return contract.contract if isinstance(contract, SignedContract) else contract


async def call_contract_function(contract: Any, method_name: str, *args: Any) -> Any:
    """Invoke a view function on a web3 contract (plain or SignedContract)"""
    function = getattr(_web3_contract(contract).functions, method_name)
    return await function(*args).call()


class ContractHelper:
    """Dispatches encrypted payloads into contract calls"""

    def __init__(self, client: "FhevmClient"):
        self.client = client

    def create_contract(self, address: str, abi: List[Dict[str, Any]], signer: Optional[Signer] = None) -> SignedContract:
        """Bind ``abi`` at ``address`` on the client's provider

        Raises:
            SignerRequiredError: neither ``signer`` nor the client signer is set
        """
        signer_to_use = signer or self.client.get_signer()
        if signer_to_use is None:
            raise SignerRequiredError("Signer required to create contract instance")

        if not Web3.is_address(address):
            raise ValueError(f"Invalid Ethereum address: {address}")

        w3 = self.client.get_provider()
        contract = w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        return SignedContract(contract=contract, signer=signer_to_use)

    async def send_encrypted_transaction(
        self,
        contract: Union[SignedContract, Any],
        method_name: str,
        encrypted_input: Union[EncryptedInput, Dict[str, Any]],
        *additional_args: Any,
        confirmations: int = 1,
        timeout: float = 120
    ):
        """Call ``method_name(handles[0], input_proof, *additional_args)`` and wait for the receipt

        Only the first handle is threaded through; contracts taking several
        handles from one session must be called directly.
        """
        if not isinstance(encrypted_input, EncryptedInput):
            try:
                encrypted_input = EncryptedInput.model_validate(encrypted_input)
            except ValueError as e:
                raise ContractCallError(f"Invalid encrypted input: {e}") from e
        if not encrypted_input.handles:
            raise ContractCallError("Encrypted input has no handles")

        signer = contract.signer if isinstance(contract, SignedContract) else self.client.get_signer()
        if signer is None:
            raise SignerRequiredError("Signer required to send encrypted transaction")

        w3 = self.client.get_provider()
        try:
            function = getattr(_web3_contract(contract).functions, method_name)(
                encrypted_input.handles[0],
                encrypted_input.input_proof,
                *additional_args
            )

            transaction = await function.build_transaction({'from': signer.address})
            transaction['nonce'] = await w3.eth.get_transaction_count(
                signer.address,
                'pending'  # Include pending transactions
            )

            raw_transaction = await signer.sign_transaction(transaction)
            tx_hash = await w3.eth.send_raw_transaction(raw_transaction)

            logger.info(
                f"Encrypted transaction sent: {method_name}",
                extra={
                    "from": signer.address,
                    "to": transaction.get('to'),
                    "nonce": transaction['nonce']
                }
            )

            receipt = await wait_for_transaction(w3, tx_hash, confirmations=confirmations, timeout=timeout)

        except Exception as e:
            logger.error(f"Encrypted transaction {method_name} failed: {e}")
            raise ContractCallError(f"Failed to send encrypted transaction: {e}") from e

        logger.info(
            "Encrypted transaction confirmed",
            extra={
                "method": method_name,
                "block": receipt['blockNumber'],
                "gas_used": receipt.get('gasUsed')
            }
        )
        return receipt

    async def call_view(self, contract: Union[SignedContract, Any], method_name: str, *args: Any) -> Any:
        """Plain view call with ContractCallError wrapping"""
        try:
            return await call_contract_function(contract, method_name, *args)
        except Exception as e:
            logger.error(f"View call {method_name} failed: {e}")
            raise ContractCallError(f"Failed to call view function: {e}") from e
