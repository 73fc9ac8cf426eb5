"""
Shared helpers: logging, single-flight guard and utilities
"""
from .logging_config import LoggedOperation, StructuredLogger, configure_sdk_logging
from .single_flight import SingleFlight
from .utils import bytes_to_hex, format_error, hex_to_bytes, retry, wait_for_transaction

__all__ = [
    'LoggedOperation',
    'StructuredLogger',
    'configure_sdk_logging',
    'SingleFlight',
    'bytes_to_hex',
    'format_error',
    'hex_to_bytes',
    'retry',
    'wait_for_transaction',
]
