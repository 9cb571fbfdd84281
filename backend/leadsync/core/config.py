"""
Configuration Management
Loads settings from environment variables and the optional .env file
"""
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = "development"
    debug: bool = True

    # API Settings
    api_prefix: str = "/api/v1"
    cors_origins: str = "http://localhost:3000"

    # Persistence (Supabase)
    supabase_url: Optional[str] = None
    supabase_service_key: Optional[str] = None

    # Conversation provider
    conversations_url: Optional[str] = None
    conversations_token: Optional[str] = None
    conversations_timeout: float = 30.0

    # Sync cadence
    sync_interval_seconds: float = 300.0
    cache_ttl_seconds: float = 300.0

    # Notifications
    notification_function: str = "sendgrid-notifications"

    # AI insights
    groq_api_key: Optional[str] = None
    insights_model: str = "llama-3.3-70b-versatile"

    # Profile lookups
    profile_fetch_retries: int = 5
    profile_fetch_delay: float = 0.3

    @property
    def cors_origin_list(self) -> List[str]:
        """Comma-separated CORS_ORIGINS as a list"""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def resolved_conversations_url(self) -> str:
        """
        Conversation endpoint, defaulting to the edge function on the
        configured Supabase project.
        """
        if self.conversations_url:
            return self.conversations_url.rstrip("/")
        if not self.supabase_url:
            raise RuntimeError(
                "CONVERSATIONS_URL is not configured. "
                "Set CONVERSATIONS_URL or SUPABASE_URL environment variable."
            )
        return f"{self.supabase_url.rstrip('/')}/functions/v1/elevenlabs-conversations"

    @property
    def resolved_conversations_token(self) -> Optional[str]:
        return self.conversations_token or self.supabase_service_key


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
