"""Configuration and environment loading for TreinUp."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Supabase
    supabase_url: str
    supabase_key: str
    # Service-role key, only set where the functions service runs
    supabase_service_key: str | None = None

    # Tables
    profiles_table: str = "profiles"
    memberships_table: str = "team_memberships"
    plans_table: str = "plans"
    subscriptions_table: str = "subscriptions"

    # Functions service
    functions_url: str = "http://localhost:8080"
    functions_api_key: str

    # Tenancy
    default_tenant_id: str
    default_team_id: str
    default_plan_id: str | None = None

    # Client behaviour
    request_timeout_seconds: float = 15.0
    credential_store_path: Path = Path.home() / ".treinup" / "credentials.json"
    provisioning_ledger_path: Path = Path.home() / ".treinup" / "provisioning.json"

    # Functions server
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
