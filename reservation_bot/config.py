"""
Configuration management using Pydantic Settings.
Reads from environment variables.
"""

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class ConfigurationError(ValueError):
    """Raised at startup when a required collaborator or setting is missing."""


class Settings(BaseSettings):
    """Application settings."""

    model_config = ConfigDict(env_file=".env", case_sensitive=False)

    # Application Configuration
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Session memory controls
    max_sessions: int = Field(default=1000, alias="MAX_SESSIONS")
    session_ttl_seconds: int = Field(default=1800, alias="SESSION_TTL_SECONDS")

    # Intent recognition
    recognizer_backend: str = Field(default="keyword", alias="RECOGNIZER_BACKEND")
    litellm_model: str = Field(default="gpt-4o-mini", alias="LITELLM_MODEL")
    llm_api_key: str | None = Field(default=None, alias="LLM_API_KEY")
    recognizer_min_score: float = Field(default=0.5, alias="RECOGNIZER_MIN_SCORE")

    # Knowledge base
    kb_min_confidence: float = Field(default=0.3, alias="KB_MIN_CONFIDENCE")

    # Speech synthesis markup
    voice_font_name: str = Field(
        default="Microsoft Server Speech Text to Speech Voice (en-US, JessaRUS)",
        alias="VOICE_FONT_NAME",
    )
    voice_font_language: str = Field(default="en-US", alias="VOICE_FONT_LANGUAGE")

    # Static assets for cards
    site_url: str = Field(default="https://contoso-restaurant.example.com", alias="SITE_URL")

    # Circuit Breaker Configuration
    circuit_breaker_failure_threshold: int = Field(
        default=5, alias="CIRCUIT_BREAKER_FAILURE_THRESHOLD"
    )
    circuit_breaker_timeout: int = Field(default=60, alias="CIRCUIT_BREAKER_TIMEOUT")


# Global settings instance
settings = Settings()
