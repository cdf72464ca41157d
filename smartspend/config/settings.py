"""
Configuration Management for Smart Spend AI

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Components receive their settings through their constructors, so nothing
reads the environment at call time and tests can inject their own values.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Optional on purpose: a missing key is reported as ApiKeyMissingError
    # when an AI operation is attempted, not as a startup crash.
    api_key: Optional[str] = Field(
        default=None,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.0-flash",
        description="Gemini model to use"
    )
    max_output_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class RetrySettings(BaseSettings):
    """Backoff policy for rate-limited AI calls."""

    model_config = SettingsConfigDict(
        env_prefix="AI_RETRY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    max_attempts: int = Field(
        default=3,
        ge=0,
        le=6,
        description="Retries after the first attempt when rate limited"
    )
    initial_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=30.0,
        description="Delay before the first retry; doubled on every retry"
    )

    @property
    def worst_case_wait_seconds(self) -> float:
        """Total time spent sleeping if every attempt is rate limited."""
        return self.initial_delay_seconds * (2 ** self.max_attempts - 1)


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Ledger defaults
    default_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="Currency code new profiles start with"
    )
    prompt_transaction_limit: int = Field(
        default=500,
        ge=1,
        le=5000,
        description="Maximum number of transactions embedded in one analysis prompt"
    )

    # Validation thresholds
    max_transaction_amount: float = Field(
        default=1_000_000_000.0,
        gt=0,
        description="Maximum reasonable transaction amount (for sanity checking)"
    )
    future_date_tolerance_days: int = Field(
        default=7,
        ge=0,
        description="How many days in the future a transaction date can be"
    )

    @field_validator('default_currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.strip().upper()


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def retry(self) -> RetrySettings:
        return RetrySettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("gemini", "retry", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    # The key is optional at load time, but AI features need it
    from smartspend.agents.ai_client import CredentialStatus, credential_status

    if results.get("gemini"):
        status = credential_status(settings.gemini.api_key)
        results["gemini_api_key"] = status is CredentialStatus.PRESENT

    return results
