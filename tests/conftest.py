"""Shared fixtures: in-memory FHE backend, signer and client builders"""

import asyncio
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from web3 import Web3

sys.path.insert(0, str(Path(__file__).parent.parent))

from fhevm_sdk.config import reset_settings
from fhevm_sdk.fhe.authorization import build_reencrypt_typed_data
from fhevm_sdk.types import ClientConfig

CONTRACT_ADDRESS = Web3.to_checksum_address("0x" + "12" * 20)
OTHER_CONTRACT = Web3.to_checksum_address("0x" + "34" * 20)
USER_ADDRESS = Web3.to_checksum_address("0x" + "ab" * 20)
ACL_ADDRESS = Web3.to_checksum_address("0x" + "cd" * 20)
GATEWAY_URL = "http://gateway.test"
PUBLIC_KEY = "0x" + "5e" * 32


class FakeInputBuilder:
    """Records typed values and returns one handle per value"""

    def __init__(self, instance: "FakeInstance", contract_address: str, user_address: str):
        self.instance = instance
        self.contract_address = contract_address
        self.user_address = user_address
        self.values: List[tuple] = []

    def add8(self, value):
        self.values.append(("euint8", value))

    def add16(self, value):
        self.values.append(("euint16", value))

    def add32(self, value):
        self.values.append(("euint32", value))

    def add64(self, value):
        self.values.append(("euint64", value))

    def add_bool(self, value):
        self.values.append(("ebool", value))

    async def encrypt(self) -> Dict[str, Any]:
        self.instance.sealed_sessions.append(self)
        if self.instance.fail_encrypt:
            raise RuntimeError("backend sealing failed")
        handles = ["0x" + format(index + 1, "064x") for index in range(len(self.values))]
        return {"handles": handles, "inputProof": "0x" + "aa" * 16}


class FakeInstance:
    """In-memory stand-in for the FHE backend capability"""

    def __init__(self, plaintexts: Optional[Dict[int, Any]] = None):
        self.plaintexts = plaintexts or {}
        self.delays: Dict[int, float] = {}
        self.failing_handles = set()
        self.fail_encrypt = False
        self.sealed_sessions: List[FakeInputBuilder] = []
        self.reencrypt_calls: List[tuple] = []
        self.completed: List[int] = []

    def create_encrypted_input(self, contract_address, user_address):
        return FakeInputBuilder(self, contract_address, user_address)

    def get_public_key(self):
        return PUBLIC_KEY

    def create_eip712(self, contract_address, user_address):
        return build_reencrypt_typed_data(
            chain_id=31337,
            contract_address=contract_address,
            user_address=user_address,
            public_key=PUBLIC_KEY,
            verifying_contract=ACL_ADDRESS
        )

    async def reencrypt(self, handle, contract_address, user_address, signature):
        self.reencrypt_calls.append((handle, contract_address, user_address, signature))
        await asyncio.sleep(self.delays.get(handle, 0))
        if handle in self.failing_handles:
            raise RuntimeError(f"gateway rejected handle {handle}")
        self.completed.append(handle)
        return self.plaintexts[handle]


class FakeFactory:
    """Counts backend constructions; can be slowed down or made to fail"""

    def __init__(self, instance: Optional[FakeInstance] = None, delay: float = 0, fail_times: int = 0):
        self.instance = instance or FakeInstance()
        self.delay = delay
        self.fail_times = fail_times
        self.calls = 0
        self.configs = []

    async def __call__(self, config):
        self.calls += 1
        self.configs.append(config)
        await asyncio.sleep(self.delay)
        if self.fail_times > 0:
            self.fail_times -= 1
            raise ConnectionError("backend unreachable")
        return self.instance


class FakeSigner:
    """Signer that records typed-data requests"""

    def __init__(self, address: str = USER_ADDRESS, delay: float = 0):
        self._address = address
        self.delay = delay
        self.typed_data_requests: List[tuple] = []
        self.transactions: List[dict] = []

    @property
    def address(self) -> str:
        return self._address

    async def sign_typed_data(self, domain, types, message) -> str:
        self.typed_data_requests.append((domain, types, message))
        await asyncio.sleep(self.delay)
        return "0x" + "51" * 65

    async def sign_transaction(self, transaction) -> bytes:
        self.transactions.append(transaction)
        return b"\x02signed"


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Isolate tests from FHEVM_* variables in the environment"""
    for key in list(os.environ):
        if key.startswith("FHEVM_"):
            monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def fake_instance():
    return FakeInstance(plaintexts={1: 500, 2: 42, 3: 7})


@pytest.fixture
def fake_factory(fake_instance):
    return FakeFactory(fake_instance)


@pytest.fixture
def fake_signer():
    return FakeSigner()


@pytest.fixture
def make_config(fake_factory, fake_signer):
    """Build a ClientConfig wired to the fake backend"""

    def _make(**overrides) -> ClientConfig:
        values = {
            "provider": object(),
            "signer": fake_signer,
            "network": "localhost",
            "gateway_url": GATEWAY_URL,
            "acl_address": ACL_ADDRESS,
            "instance_factory": fake_factory,
        }
        values.update(overrides)
        return ClientConfig(**values)

    return _make


@pytest.fixture
def encrypt_options():
    return {"contract": CONTRACT_ADDRESS, "user_address": USER_ADDRESS}
