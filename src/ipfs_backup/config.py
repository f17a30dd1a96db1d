"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from ipfs_backup.errors import ConfigurationError

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    pinata_jwt: str | None = None
    pinata_api_url: str = "https://api.pinata.cloud"
    pin_page_limit: int = 1000
    cid_output_dir: str = "outputs"
    irys_node_url: str = "https://uploader.irys.xyz"
    irys_token: str = "usdc-eth"
    irys_gateway_url: str = "https://gateway.irys.xyz"
    wallet_address: str | None = None
    backup_file_path: str = "ipfs-backup.tar.gz"
    upload_log_file: str = "upload.log"
    upload_chunk_size: int = 25_000_000
    upload_batch_size: int = 5
    chunk_retry_attempts: int = 3
    chunk_retry_delay_seconds: float = 1.0
    progress_interval_seconds: float = 5.0
    atomic_decimals: int = 6
    atomic_symbol: str = "USDC"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def require_setting(value: str | None, env_name: str) -> str:
    """Return a credential value or fail if it is missing or blank."""
    if value is None or not value.strip():
        raise ConfigurationError(f"Missing {env_name}. Set it in .env")
    return value.strip()
