"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from loguru import logger
from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from walletsync.config.constants import (
    RPC_MAX_RETRIES,
    RPC_RETRY_DELAY_BASE,
    RPC_TIMEOUT,
)
from walletsync.models.wallet import Currency, WalletIdentity


LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Wallet identity
    wallet_name: str = Field(
        default="eigenix",
        min_length=1,
        description="Logical wallet name used on both wallet hosts",
    )
    bitcoin_wallet_name: str | None = None  # Overrides wallet_name for Bitcoin
    monero_wallet_name: str | None = None  # Overrides wallet_name for Monero

    # Bitcoin Core
    bitcoin_rpc_url: str = "http://127.0.0.1:8332"
    bitcoin_cookie_path: str = "/mnt/vault/bitcoind-data/.cookie"
    bitcoin_rpc_cookie: SecretStr | None = None  # "user:password", skips the file
    bitcoin_rescan: bool = Field(
        default=False,
        description="Rescan from genesis when importing a descriptor into a new wallet",
    )

    # monero-wallet-rpc
    monero_wallet_rpc_url: str = "http://127.0.0.1:18082/json_rpc"
    monero_wallet_password: SecretStr = SecretStr("")

    # Seed authority (ASB)
    seed_authority_rpc_url: str = "http://127.0.0.1:9944"

    # RPC behaviour
    rpc_timeout: float = Field(
        default=RPC_TIMEOUT, gt=0, description="Per-call RPC timeout in seconds"
    )
    rpc_max_retries: int = Field(
        default=RPC_MAX_RETRIES, ge=1, description="Attempts for connectivity failures"
    )
    rpc_retry_delay_base: float = Field(
        default=RPC_RETRY_DELAY_BASE, ge=0, description="Backoff base delay in seconds"
    )

    # Application
    log_level: str = "INFO"
    log_file: str | None = "logs/walletsync.log"

    @field_validator(
        "bitcoin_rpc_url", "monero_wallet_rpc_url", "seed_authority_rpc_url"
    )
    @classmethod
    def validate_rpc_url(cls, v: str) -> str:
        """Validate that RPC endpoints are http(s) URLs."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"RPC URL must start with http:// or https://, got {v!r}")
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate loguru level name."""
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @model_validator(mode="after")
    def warn_on_rescan(self) -> "Settings":
        """Log a hint when a full rescan is requested."""
        if self.bitcoin_rescan:
            logger.warning(
                "BITCOIN_RESCAN is enabled: a newly created wallet will rescan "
                "from genesis, which can take hours"
            )
        return self

    @property
    def resolved_bitcoin_wallet_name(self) -> str:
        return self.bitcoin_wallet_name or self.wallet_name

    @property
    def resolved_monero_wallet_name(self) -> str:
        return self.monero_wallet_name or self.wallet_name

    def wallet_identities(self) -> set[WalletIdentity]:
        """
        Build the set of wallet identities to reconcile.

        Returns:
            One identity per supported currency
        """
        return {
            WalletIdentity(Currency.BITCOIN, self.resolved_bitcoin_wallet_name),
            WalletIdentity(Currency.MONERO, self.resolved_monero_wallet_name),
        }


settings = Settings()
