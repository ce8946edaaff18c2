"""Configuration settings for the practice workflow automation layer."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class FlatSettings(BaseSettings):
    """Flat settings read from environment variables or a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # LLM provider selection
    llm_provider: Literal["claude", "openai", "gemini"] = Field(
        default="gemini", validation_alias="LLM_PROVIDER"
    )

    # LLM API keys (only the selected provider's key is needed)
    anthropic_api_key: SecretStr = Field(
        default=SecretStr(""), validation_alias="ANTHROPIC_API_KEY"
    )
    openai_api_key: SecretStr = Field(
        default=SecretStr(""), validation_alias="OPENAI_API_KEY"
    )
    google_api_key: SecretStr = Field(
        default=SecretStr(""), validation_alias="GOOGLE_API_KEY"
    )

    # Model selections
    claude_model: str = Field(
        default="claude-haiku-4-5", validation_alias="CLAUDE_MODEL"
    )
    gpt_model: str = Field(default="gpt-5-nano", validation_alias="GPT_MODEL")
    gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")

    # LLM parameters
    llm_max_tokens: int = Field(default=4096, validation_alias="LLM_MAX_TOKENS")
    llm_temperature: float = Field(default=0.2, validation_alias="LLM_TEMPERATURE")

    # Inference bounds
    inference_timeout: float = Field(
        default=120.0, validation_alias="INFERENCE_TIMEOUT"
    )
    tool_timeout: float = Field(default=15.0, validation_alias="TOOL_TIMEOUT")
    max_tool_rounds: int = Field(default=12, validation_alias="MAX_TOOL_ROUNDS")

    # Practice defaults
    fallback_partner_id: str = Field(default="S001", validation_alias="FALLBACK_PARTNER_ID")
    fallback_admin_id: str = Field(default="S001", validation_alias="FALLBACK_ADMIN_ID")
    default_engagement_hours: float = Field(
        default=10.0, validation_alias="DEFAULT_ENGAGEMENT_HOURS"
    )

    # Document store
    store_backend: Literal["memory", "firestore"] = Field(
        default="memory", validation_alias="STORE_BACKEND"
    )
    firestore_project_id: str = Field(default="", validation_alias="FIRESTORE_PROJECT_ID")
    firestore_database: str = Field(
        default="(default)", validation_alias="FIRESTORE_DATABASE"
    )
    firestore_base_url: str = Field(
        default="https://firestore.googleapis.com/v1",
        validation_alias="FIRESTORE_BASE_URL",
    )
    firestore_token: SecretStr = Field(
        default=SecretStr(""), validation_alias="FIRESTORE_TOKEN"
    )
    firestore_timeout: float = Field(default=30.0, validation_alias="FIRESTORE_TIMEOUT")

    # HTTP server
    api_host: str = Field(default="0.0.0.0", validation_alias="API_HOST")
    api_port: int = Field(default=8000, validation_alias="PORT")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )


@lru_cache
def get_settings() -> FlatSettings:
    """Get cached settings instance."""
    return FlatSettings()
