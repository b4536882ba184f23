from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "engineer-ai-visual-assistant"
    log_level: str = "INFO"

    # request limits
    max_image_mb: int = 10

    # generative backend
    analysis_provider: str = "gemini"  # "gemini" | "mock"
    gemini_model_id: str = "gemini-2.5-flash"
    analysis_timeout_seconds: float = 120.0
    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY"),
    )

    # camera capture
    jpeg_quality: int = 95
    camera_index_environment: int = 0
    camera_index_user: int = 1

    # session workspace
    max_sessions: int = 100
    session_idle_ttl_seconds: float = 3600.0


settings = Settings()


def resolve_api_key() -> Optional[str]:
    """Read the API key from the environment (or .env) at call time, not from `settings`."""
    key = Settings().api_key
    if key is None or not key.strip():
        return None
    return key.strip()
