"""
Logging configuration for applications embedding the FHEVM SDK
Includes structured JSON logging, correlation IDs and timed operations
"""
import logging
import logging.handlers
import sys
import time
import uuid
from pathlib import Path
from typing import Optional

from pythonjsonlogger import jsonlogger

from ..config import Settings, get_settings

SDK_LOGGER_NAME = "fhevm_sdk"

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class CorrelationIdFilter(logging.Filter):
    """Add correlation ID to all log records for tracing"""

    def filter(self, record):
        if not hasattr(record, 'correlation_id'):
            record.correlation_id = str(uuid.uuid4())
        return True


class StructuredLogger:
    """Structured logger setup with correlation tracking"""

    @staticmethod
    def setup_logging(
        service_name: str = SDK_LOGGER_NAME,
        log_level: str = "INFO",
        log_file: Optional[str] = None,
        enable_json: bool = True
    ) -> logging.Logger:
        """Setup structured logging for the SDK logger tree"""

        logger = logging.getLogger(service_name)
        logger.setLevel(getattr(logging, log_level.upper()))

        # Remove existing handlers so repeated setup does not duplicate output
        logger.handlers.clear()

        if enable_json:
            formatter = jsonlogger.JsonFormatter(
                '%(asctime)s %(levelname)s %(name)s %(correlation_id)s %(message)s',
                rename_fields={
                    'asctime': '@timestamp',
                    'levelname': 'level',
                    'name': 'logger'
                }
            )
        else:
            formatter = logging.Formatter(TEXT_FORMAT)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(CorrelationIdFilter())
        logger.addHandler(console_handler)

        if log_file:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10_000_000,  # 10MB
                backupCount=5
            )
            file_handler.setFormatter(formatter)
            file_handler.addFilter(CorrelationIdFilter())
            logger.addHandler(file_handler)

        return logger


def configure_sdk_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """Configure the SDK logger from settings"""
    settings = settings or get_settings()

    logger = StructuredLogger.setup_logging(
        service_name=SDK_LOGGER_NAME,
        log_level=settings.log_level,
        log_file=settings.log_file,
        enable_json=settings.log_json
    )

    logger.info(f"{SDK_LOGGER_NAME} logging configured", extra={
        'log_level': settings.log_level,
        'json_logging': settings.log_json,
        'log_file': settings.log_file
    })

    return logger


class LoggedOperation:
    """Context manager for logging operations with timing"""

    def __init__(self, logger: logging.Logger, operation: str, **kwargs):
        self.logger = logger
        self.operation = operation
        self.extra = kwargs
        self.start_time = None

    def __enter__(self):
        self.start_time = time.monotonic()
        self.logger.debug(f"Starting {self.operation}", extra=self.extra)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.monotonic() - self.start_time

        if exc_type:
            self.logger.error(
                f"{self.operation} failed after {duration:.2f}s: {exc_val}",
                extra={**self.extra, 'duration_seconds': duration}
            )
        else:
            self.logger.info(
                f"Completed {self.operation} in {duration:.2f}s",
                extra={**self.extra, 'duration_seconds': duration}
            )

        return False  # Don't suppress exceptions
