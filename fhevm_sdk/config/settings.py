"""
Centralized configuration for the FHEVM SDK
Every value can be overridden with an FHEVM_* environment variable or a .env file
"""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """SDK configuration with environment overrides"""

    # === NETWORK CONFIGURATION ===
    network: str = Field(default="localhost", description="Named network (localhost, sepolia, mainnet)")
    gateway_url: Optional[str] = Field(default=None, description="Decryption gateway base URL")
    acl_address: Optional[str] = Field(default=None, description="ACL contract address")

    # === TIMEOUTS ===
    # Applies to gateway HTTP calls made by the default backend
    request_timeout: float = Field(default=30.0, description="Gateway request timeout in seconds")
    # None keeps signature prompts and gateway round trips unbounded
    decrypt_timeout: Optional[float] = Field(default=None, description="Per-decryption deadline in seconds")

    # === DECRYPTION POLICY ===
    batch_allow_partial: bool = Field(default=False, description="Return per-item results from batch decrypt")

    # === RETRY HELPER ===
    retry_max_tries: int = Field(default=3, description="Attempts made by utils.retry")
    retry_delay: float = Field(default=1.0, description="Seconds between retry attempts")

    # === LOGGING ===
    log_level: str = Field(default="INFO", description="Log level")
    log_json: bool = Field(default=True, description="Emit JSON log records")
    log_file: Optional[str] = Field(default=None, description="Optional rotating log file")

    model_config = SettingsConfigDict(
        env_prefix="FHEVM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Singleton instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create settings singleton"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment"""
    global _settings
    _settings = None
