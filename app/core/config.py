"""Configuration management for the Co-Partner engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    # AI gateway configuration (OpenAI-compatible chat completions)
    AI_GATEWAY_API_KEY: str = Field(..., description="API key for the chat-completion gateway")
    AI_GATEWAY_BASE_URL: str = Field(
        default="https://ai.gateway.lovable.dev/v1",
        description="Base URL of the OpenAI-compatible gateway",
    )
    GATEWAY_TIMEOUT_SECONDS: float = Field(
        default=120.0, description="Timeout for a single gateway call"
    )

    # Environment
    APP_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")
    CORS_ALLOW_ORIGINS: list[str] = Field(
        default=["*"], description="Origins allowed by the CORS middleware"
    )

    # Business plan analysis
    ANALYSIS_MODEL: str = Field(
        default="google/gemini-2.5-flash", description="Model for business plan scoring"
    )
    BUSINESS_PLAN_BUCKET: str = Field(
        default="business-plans", description="Storage bucket for uploaded plans"
    )
    MAX_UPLOAD_BYTES: int = Field(
        default=50_000_000, description="Max file upload size in bytes"
    )
    MAX_ANALYSIS_CHARS: int = Field(
        default=50_000, description="Max characters of plan text sent for analysis"
    )
    ANALYSIS_MARK_FAILED_ON_ERROR: bool = Field(
        default=True,
        description="Set status=failed when analysis fails; False leaves the record processing",
    )

    # Persona chat
    CHAT_MODEL: str = Field(
        default="google/gemini-2.5-flash", description="Model for persona chat turns"
    )
    CHAT_REQUESTS_PER_MINUTE: int = Field(
        default=20, description="Sustained chat turns per user per minute"
    )
    CHAT_HISTORY_LIMIT: int = Field(
        default=50, description="Max stored messages replayed into a chat turn"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
