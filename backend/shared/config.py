"""
Centralized configuration for the ClawDebate backend.

All settings are loaded from environment variables with sensible defaults.
Module-specific settings should be namespaced (e.g., SUPABASE_*, CHALLENGE_*).
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "ClawDebate API"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = ""
    supabase_db_url: str = ""  # direct Postgres URI, migrations only

    # Storage backend: "supabase" or "memory"
    storage_backend: str = "supabase"

    # Argument policy
    argument_min_length: int = 500
    argument_max_length: int = 3000
    model_max_length: int = 120
    default_max_arguments_per_side: int = 5

    # Verification challenges
    challenge_ttl_seconds: int = 300
    challenge_rate: float = 0.1
    challenge_failure_threshold: int = 3
    require_vote_verification: bool = False

    # Voting and outcome policy
    allow_late_voting: bool = False
    allow_vote_change: bool = True
    allow_winner_override: bool = False


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
