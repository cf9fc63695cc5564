"""Configuration management for the locale sync and translation tool."""

import logging
from pathlib import Path
from typing import Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

# This file is in src/common/, so go up 2 levels to project root
_PROJECT_ROOT = Path(__file__).parent.parent.parent

# Advisory range for the number of keys sent per provider request
BATCH_SIZE_ADVISORY_MIN = 10
BATCH_SIZE_ADVISORY_MAX = 2000


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Provider Credentials (Gemini takes priority when both are set)
    gemini_api_key: Optional[str] = Field(default=None, env="GEMINI_API_KEY")
    openai_api_key: Optional[str] = Field(default=None, env="OPENAI_API_KEY")

    # Model Selection
    gemini_model: str = Field(default="gemini-1.5-flash", env="GEMINI_MODEL")
    openai_model: str = Field(default="gpt-3.5-turbo", env="OPENAI_MODEL")
    openai_temperature: float = Field(
        default=0.3, env="OPENAI_TEMPERATURE"
    )  # Lower for consistent translations

    # Translation Prompt Context
    translation_context: str = Field(default="", env="TRANSLATION_CONTEXT")
    target_language: str = Field(
        default="Portuguese (Brazil)", env="TARGET_LANGUAGE"
    )
    project_name: str = Field(default="Software Application", env="PROJECT_NAME")
    project_description: str = Field(default="", env="PROJECT_DESCRIPTION")

    # Batch Orchestration
    translation_batch_size: int = Field(
        default=600, env="TRANSLATION_BATCH_SIZE"
    )  # Keys per provider request (advisory range 10-2000)
    translation_min_cooldown_ms: int = Field(
        default=5000, env="TRANSLATION_MIN_COOLDOWN_MS"
    )  # Raises the 5000 ms batch floor, never lowers it
    translation_transient_retries: int = Field(
        default=0, env="TRANSLATION_TRANSIENT_RETRIES"
    )  # Retries of a failed batch within a run (0 = skip the batch)
    translation_retry_initial_delay: float = Field(
        default=2.0, env="TRANSLATION_RETRY_INITIAL_DELAY"
    )
    translation_retry_max_delay: float = Field(
        default=60.0, env="TRANSLATION_RETRY_MAX_DELAY"
    )
    translation_retry_exponential_base: int = Field(
        default=2, env="TRANSLATION_RETRY_EXPONENTIAL_BASE"
    )
    provider_timeout_seconds: float = Field(
        default=120.0, env="PROVIDER_TIMEOUT_SECONDS"
    )  # Large batches take a while server-side

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    # API Configuration
    api_host: str = Field(default="127.0.0.1", env="API_HOST")
    api_port: int = Field(default=8000, env="API_PORT")
    cors_allowed_origins: Optional[str] = Field(
        default=None, env="CORS_ALLOWED_ORIGINS"
    )

    @field_validator("translation_batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        """
        Reject non-positive batch sizes and warn outside the advisory range.

        Args:
            v: Configured batch size

        Returns:
            The batch size unchanged

        Raises:
            ValueError: If the batch size is below 1
        """
        if v < 1:
            raise ValueError(f"translation_batch_size must be at least 1, got {v}")
        if not BATCH_SIZE_ADVISORY_MIN <= v <= BATCH_SIZE_ADVISORY_MAX:
            logger.warning(
                f"⚠️  translation_batch_size={v} is outside the advisory range "
                f"[{BATCH_SIZE_ADVISORY_MIN}, {BATCH_SIZE_ADVISORY_MAX}]"
            )
        return v

    @field_validator("translation_min_cooldown_ms", "translation_transient_retries")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Reject negative cooldown floors and retry counts."""
        if v < 0:
            raise ValueError(f"value must be non-negative, got {v}")
        return v

    def get_active_provider(self) -> Tuple[str, Optional[str], str]:
        """
        Pick the provider to translate with.

        The Gemini key wins when both keys are configured.

        Returns:
            Tuple of (provider, api_key, model). api_key is None when no
            key is configured at all.
        """
        if self.gemini_api_key:
            return "gemini", self.gemini_api_key, self.gemini_model
        if self.openai_api_key:
            return "openai", self.openai_api_key, self.openai_model
        return "gemini", None, self.gemini_model

    class Config:
        env_file = str(_PROJECT_ROOT / ".env")
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
