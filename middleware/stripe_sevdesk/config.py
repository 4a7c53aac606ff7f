"""
Application Configuration Management

Loads configuration from environment variables (or a local .env file).
Credentials for SevDesk are not configured directly: SEVDESK_API_KEY_SECRET
holds a reference that the secret provider resolves on every client build.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with validation"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: str = Field(default="development", description="Environment name")

    # Application
    app_name: str = Field(default="Stripe-SevDesk Connector")
    app_version: str = Field(default="1.0.0")
    log_level: str = Field(default="INFO")

    # FastAPI
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Stripe
    stripe_secret: Optional[str] = Field(default=None, description="Stripe secret API key")
    stripe_webhook_secret: Optional[str] = Field(
        default=None, description="Stripe webhook signing secret"
    )
    stripe_api_version: str = Field(default="2024-06-20")

    # Sentry
    sentry_dsn: Optional[str] = Field(default=None, description="Sentry DSN, disabled when unset")
    sentry_traces_sample_rate: float = Field(default=1.0)

    # SevDesk
    sevdesk_api_key_secret: Optional[str] = Field(
        default=None, description="Secret reference holding the SevDesk API key"
    )
    sevdesk_check_account: Optional[str] = Field(
        default=None, description="SevDesk CheckAccount id used when booking payments"
    )
    sevdesk_base_url: str = Field(default="https://my.sevdesk.de/api/v1")
    sevdesk_contact_category_id: int = Field(default=3, description="SevDesk category for customers")
    sevdesk_timeout: float = Field(default=30.0)

    # Secrets
    secrets_backend: Literal["aws", "env"] = Field(
        default="aws",
        description="'aws' resolves references via Secrets Manager, 'env' uses them verbatim",
    )
    aws_region: str = Field(default="eu-central-1")
    aws_endpoint_url: Optional[str] = Field(default=None)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment"""
        valid_envs = ["development", "staging", "production", "test"]
        v_lower = v.lower()
        if v_lower not in valid_envs:
            raise ValueError(f"Environment must be one of {valid_envs}")
        return v_lower

    @field_validator("sevdesk_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.environment == "development"

    def validate_required_secrets(self) -> None:
        """
        Validate that required settings are present.
        Raises ValueError if any of them is missing.
        """
        missing = []

        if not self.stripe_secret:
            missing.append("stripe_secret")
        if not self.stripe_webhook_secret:
            missing.append("stripe_webhook_secret")
        if not self.sevdesk_api_key_secret:
            missing.append("sevdesk_api_key_secret")
        if not self.sevdesk_check_account:
            missing.append("sevdesk_check_account")

        if missing:
            raise ValueError(
                f"Missing required configuration: {', '.join(missing)}. "
                f"Ensure the .env file or environment variables are configured."
            )


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).
    Fails fast when a required value is missing.
    """
    settings = Settings()
    settings.validate_required_secrets()
    return settings


# Export singleton instance
settings = get_settings()
