"""Tests for shared utilities, settings, logging and the single-flight guard"""

import asyncio
import gc
import json
import logging

import pytest
from web3.exceptions import ContractLogicError

from fhevm_sdk.common.logging_config import LoggedOperation, StructuredLogger, configure_sdk_logging
from fhevm_sdk.common.single_flight import SingleFlight
from fhevm_sdk.common.utils import bytes_to_hex, format_error, hex_to_bytes, retry, wait_for_transaction
from fhevm_sdk.config import Settings, get_settings, reset_settings
from fhevm_sdk.types import ClientConfig

from conftest import ACL_ADDRESS


class RpcError(Exception):
    def __init__(self, code, message):
        super().__init__(message)
        self.code = code
        self.message = message


class FakeEth:
    """Receipt source with a scripted block height"""

    def __init__(self, receipt, blocks=()):
        self.receipt = receipt
        self._blocks = iter(blocks)
        self.block_reads = 0

    async def wait_for_transaction_receipt(self, tx_hash, timeout, poll_latency):
        return self.receipt

    @property
    def block_number(self):
        async def _read():
            self.block_reads += 1
            return next(self._blocks)
        return _read()


class FakeWeb3:
    def __init__(self, eth):
        self.eth = eth


@pytest.fixture
def sdk_logger():
    logger = logging.getLogger("fhevm_sdk")
    yield logger
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


class TestHexHelpers:

    def test_hex_to_bytes(self):
        assert hex_to_bytes("0x0a0b") == b"\x0a\x0b"
        assert hex_to_bytes("0A0B") == b"\x0a\x0b"
        assert hex_to_bytes("0x") == b""

    def test_hex_to_bytes_odd_length(self):
        with pytest.raises(ValueError):
            hex_to_bytes("0xabc")

    def test_bytes_to_hex(self):
        assert bytes_to_hex(b"\xde\xad") == "dead"
        assert bytes_to_hex(bytearray(b"\xde\xad"), prefix=True) == "0xdead"
        assert hex_to_bytes(bytes_to_hex(b"\x00\xff")) == b"\x00\xff"


class TestFormatError:

    def test_user_rejection(self):
        assert format_error({"code": 4001, "message": "denied"}) == "Transaction rejected by user"
        assert format_error(RpcError(4001, "denied")) == "Transaction rejected by user"

    def test_internal_rpc_error(self):
        assert format_error(RpcError(-32603, "boom")) == "Internal JSON-RPC error"

    def test_message_passthrough(self):
        assert format_error({"code": 3, "message": "execution reverted"}) == "execution reverted"
        assert format_error(ValueError("bad nonce")) == "bad nonce"

    @pytest.mark.parametrize("error", [None, {}, object()])
    def test_unknown(self, error):
        assert format_error(error) == "Unknown error occurred"


class TestWaitForTransaction:

    @pytest.mark.asyncio
    async def test_returns_receipt(self):
        eth = FakeEth({"status": 1, "blockNumber": 10})

        receipt = await wait_for_transaction(FakeWeb3(eth), b"\x01" * 32)

        assert receipt["blockNumber"] == 10
        assert eth.block_reads == 0

    @pytest.mark.asyncio
    async def test_reverted(self):
        eth = FakeEth({"status": 0, "blockNumber": 10})

        with pytest.raises(ContractLogicError):
            await wait_for_transaction(FakeWeb3(eth), "0x" + "01" * 32)

    @pytest.mark.asyncio
    async def test_waits_for_confirmations(self):
        eth = FakeEth({"status": 1, "blockNumber": 10}, blocks=[10, 11, 12])

        await wait_for_transaction(FakeWeb3(eth), b"\x01" * 32, confirmations=3, poll_latency=0)

        assert eth.block_reads == 3


class TestRetry:

    @pytest.mark.asyncio
    async def test_succeeds_after_failures(self):
        attempts = []

        async def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("gateway busy")
            return "ok"

        assert await retry(flaky, max_retries=3, delay=0) == "ok"
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_last_error_propagates(self):
        attempts = []

        async def broken():
            attempts.append(1)
            raise ConnectionError(f"attempt {len(attempts)}")

        with pytest.raises(ConnectionError, match="attempt 2"):
            await retry(broken, max_retries=2, delay=0)

    @pytest.mark.asyncio
    async def test_only_listed_exceptions_are_retried(self):
        attempts = []

        async def broken():
            attempts.append(1)
            raise KeyError("not retryable")

        with pytest.raises(KeyError):
            await retry(broken, max_retries=5, delay=0, exceptions=(ConnectionError,))
        assert len(attempts) == 1

    @pytest.mark.asyncio
    async def test_defaults_from_settings(self, monkeypatch):
        monkeypatch.setenv("FHEVM_RETRY_MAX_TRIES", "4")
        monkeypatch.setenv("FHEVM_RETRY_DELAY", "0")
        attempts = []

        async def broken():
            attempts.append(1)
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            await retry(broken)
        assert len(attempts) == 4

    @pytest.mark.asyncio
    async def test_invalid_max_retries(self):
        async def noop():
            return None

        with pytest.raises(ValueError):
            await retry(noop, max_retries=0)


class TestSingleFlight:

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_run(self):
        flight = SingleFlight()
        runs = []

        async def work():
            runs.append(1)
            await asyncio.sleep(0.02)
            return len(runs)

        results = await asyncio.gather(flight.run(work), flight.run(work), flight.run(work))

        assert results == [1, 1, 1]
        assert not flight.in_flight

    @pytest.mark.asyncio
    async def test_failure_is_shared_then_cleared(self):
        flight = SingleFlight()
        runs = []

        async def work():
            runs.append(1)
            await asyncio.sleep(0.01)
            if len(runs) == 1:
                raise ConnectionError("first attempt fails")
            return "second"

        results = await asyncio.gather(flight.run(work), flight.run(work), return_exceptions=True)
        assert all(isinstance(result, ConnectionError) for result in results)

        assert await flight.run(work) == "second"
        assert len(runs) == 2

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_work(self):
        flight = SingleFlight()
        runs = []

        async def work():
            runs.append(1)
            await asyncio.sleep(0.05)
            return "done"

        first = asyncio.ensure_future(flight.run(work))
        second = asyncio.ensure_future(flight.run(work))
        await asyncio.sleep(0)
        assert flight.in_flight

        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        assert await second == "done"
        assert len(runs) == 1

    @pytest.mark.asyncio
    async def test_failure_without_waiters_is_not_reported(self):
        flight = SingleFlight()
        loop = asyncio.get_running_loop()
        reported = []
        loop.set_exception_handler(lambda _loop, context: reported.append(context))

        async def work():
            await asyncio.sleep(0.01)
            raise ConnectionError("backend unreachable")

        try:
            waiter = asyncio.ensure_future(flight.run(work))
            await asyncio.sleep(0)
            waiter.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter

            await asyncio.sleep(0.05)
            assert not flight.in_flight
            gc.collect()
        finally:
            loop.set_exception_handler(None)

        assert reported == []


class TestSettings:

    def test_defaults(self):
        settings = Settings()

        assert settings.network == "localhost"
        assert settings.request_timeout == 30.0
        assert settings.decrypt_timeout is None
        assert settings.batch_allow_partial is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("FHEVM_NETWORK", "sepolia")
        monkeypatch.setenv("FHEVM_REQUEST_TIMEOUT", "5")

        settings = get_settings()

        assert settings.network == "sepolia"
        assert settings.request_timeout == 5.0

    def test_singleton_and_reset(self, monkeypatch):
        first = get_settings()
        assert get_settings() is first

        monkeypatch.setenv("FHEVM_LOG_LEVEL", "DEBUG")
        reset_settings()

        assert get_settings() is not first
        assert get_settings().log_level == "DEBUG"

    def test_client_config_from_settings(self, monkeypatch):
        monkeypatch.setenv("FHEVM_NETWORK", "mainnet")
        monkeypatch.setenv("FHEVM_GATEWAY_URL", "https://gateway.test/")
        monkeypatch.setenv("FHEVM_ACL_ADDRESS", ACL_ADDRESS.lower())

        config = ClientConfig.from_settings(provider=object(), network="sepolia")

        assert config.network == "sepolia"
        assert config.gateway_url == "https://gateway.test"
        assert config.acl_address == ACL_ADDRESS


class TestLogging:

    def test_json_records(self, sdk_logger, capsys):
        StructuredLogger.setup_logging(log_level="DEBUG", enable_json=True)

        logging.getLogger("fhevm_sdk.fhe.encryption").info("sealed", extra={"handle_count": 2})

        record = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert record["message"] == "sealed"
        assert record["level"] == "INFO"
        assert record["logger"] == "fhevm_sdk.fhe.encryption"
        assert record["handle_count"] == 2
        assert record["correlation_id"]

    def test_configure_from_settings_with_file(self, sdk_logger, tmp_path):
        log_file = tmp_path / "logs" / "sdk.log"
        settings = Settings(log_level="WARNING", log_json=False, log_file=str(log_file))

        logger = configure_sdk_logging(settings)
        logger.warning("gateway slow")
        for handler in logger.handlers:
            handler.flush()

        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 2
        assert "gateway slow" in log_file.read_text()

    def test_repeated_setup_does_not_duplicate_handlers(self, sdk_logger):
        StructuredLogger.setup_logging()
        StructuredLogger.setup_logging()

        assert len(sdk_logger.handlers) == 1

    def test_logged_operation(self, caplog):
        logger = logging.getLogger("fhevm_sdk.test")

        with caplog.at_level(logging.DEBUG, logger="fhevm_sdk.test"):
            with LoggedOperation(logger, "user decryption", handle=1):
                pass
            with pytest.raises(RuntimeError):
                with LoggedOperation(logger, "user decryption", handle=2):
                    raise RuntimeError("gateway timeout")

        messages = [record.getMessage() for record in caplog.records]
        assert "Starting user decryption" in messages
        assert any(message.startswith("Completed user decryption") for message in messages)
        assert any("failed after" in message and "gateway timeout" in message for message in messages)
        failed = [record for record in caplog.records if record.levelno == logging.ERROR][0]
        assert failed.handle == 2
        assert failed.duration_seconds >= 0
