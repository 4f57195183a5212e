"""
Application configuration loaded from environment variables.

All configuration is validated at startup to fail fast on misconfiguration.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from bizdoc.domain.rules import AnalysisConfig


class Settings(BaseSettings):
    """
    Application settings with validation.

    All settings are loaded from environment variables with the same name.
    Use .env file for local development.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Refinement (OpenAI)
    openai_api_key: str | None = Field(
        default=None,
        description="OpenAI API key; refinement is disabled when unset"
    )
    refine_model: str = Field(
        default="gpt-4o-mini",
        description="Chat model used to refine draft analyses"
    )
    refine_timeout_seconds: float = Field(
        default=18.0,
        gt=0,
        description="Hard timeout for the single refinement attempt"
    )
    refine_by_default: bool = Field(
        default=False,
        description="Refine when a request does not say either way"
    )

    # Analysis budgets
    chunk_char_budget: int = Field(
        default=80_000,
        ge=1_000,
        description="Maximum characters analysed in one pass"
    )
    max_chunks: int = Field(
        default=24,
        ge=1,
        description="Maximum chunks per document; trailing text is dropped"
    )
    evidence_char_budget: int = Field(
        default=12_000,
        ge=500,
        description="Maximum characters of evidence sent to the refiner"
    )
    min_text_length: int = Field(
        default=5,
        ge=1,
        description="Shorter request text is rejected with HTTP 400"
    )

    # Server
    debug: bool = Field(
        default=False,
        description="Enable debug mode with detailed error messages"
    )

    def analysis_config(self) -> AnalysisConfig:
        """Project runtime budgets onto the pipeline's immutable config."""
        return AnalysisConfig(
            pass_char_budget=self.chunk_char_budget,
            max_chunks=self.max_chunks,
            evidence_char_budget=self.evidence_char_budget,
        )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once at startup and cached for subsequent calls.
    This ensures consistent configuration across the application lifecycle.
    """
    return Settings()
