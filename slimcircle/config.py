"""
Configuration and settings for the SlimCircle API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Firestore
    firebase_project_id: Optional[str] = Field(default=None)

    # Clerk (identity provider)
    clerk_secret_key: Optional[str] = Field(default=None)
    clerk_api_url: str = Field(default="https://api.clerk.com/v1")
    clerk_jwks_url: Optional[str] = Field(default=None)
    clerk_webhook_secret: Optional[str] = Field(default=None)

    # Stream Chat
    stream_api_key: Optional[str] = Field(default=None)
    stream_api_secret: Optional[str] = Field(default=None)
    announcements_channel_id: str = Field(default="announcements")
    social_corner_channel_id: str = Field(default="social-corner")
    share_wins_channel_id: str = Field(default="share-wins")

    # LLM / Anthropic
    anthropic_api_key: Optional[str] = Field(default=None)
    anthropic_model: str = Field(default="claude-sonnet-4-20250514")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
