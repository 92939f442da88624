"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from eth_utils import is_address
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ONE_USDC = 1_000_000
ONE_DAY_IN_SECONDS = 60 * 60 * 24


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "RecurPay"
    app_env: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    # Platform
    token_address: str | None = None
    signer_address: str | None = None
    signer_private_key: SecretStr | None = None

    # Billing defaults (fee rate in tenths of a percent, 30 = 3%)
    default_fee_rate: int = 30
    min_cost: int = ONE_USDC
    default_interval_seconds: int = ONE_DAY_IN_SECONDS

    @field_validator("token_address", "signer_address")
    @classmethod
    def validate_address(cls, v: str | None) -> str | None:
        """Validate that configured addresses are well-formed hex addresses."""
        if v is not None and not is_address(v):
            raise ValueError(f"{v!r} is not a valid address")
        return v

    @field_validator("default_fee_rate")
    @classmethod
    def validate_default_fee_rate(cls, v: int) -> int:
        """Fee rates are tenths of a percent and cannot exceed 100%."""
        if not 0 <= v <= 1000:
            raise ValueError("DEFAULT_FEE_RATE must be between 0 and 1000")
        return v

    @field_validator("min_cost", "default_interval_seconds")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("value cannot be negative")
        return v

    @field_validator("signer_private_key")
    @classmethod
    def validate_signer_private_key(cls, v: SecretStr | None, info) -> SecretStr | None:
        """Refuse to hold the signing key in production configuration."""
        app_env = info.data.get("app_env", "development")
        if app_env == "production" and v is not None:
            raise ValueError(
                "SIGNER_PRIVATE_KEY must not be set in production. "
                "Creation approvals are issued by the off-chain signing service."
            )
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
