from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    anthropic_api_key: str = ""

    # Supabase (task persistence)
    supabase_url: str = ""
    supabase_key: str = ""

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"
    llm_model: str = "claude-sonnet-4-20250514"
    use_llm: bool = False

    # Conversation lifecycle
    conversation_ttl_hours: int = 24
    sweep_interval_seconds: int = 3600

    # Smart defaults profile handed to every new conversation
    default_time: str = "09:00"
    default_duration_minutes: int = 60
    preferred_meeting_type: str = "google_meet"
    working_hours_start: str = "08:00"
    working_hours_end: str = "18:00"
    time_zone: str = "Asia/Ho_Chi_Minh"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
