"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

LEDGER_STORE_API = "api"
LEDGER_STORE_SUPABASE = "supabase"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    backend_base_url: str
    openfoodfacts_base_url: str = "https://world.openfoodfacts.org"
    request_timeout_seconds: float = 10
    recipe_count: int = 2
    ledger_store: str = LEDGER_STORE_API
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_ledger_store(raw: str | None) -> str:
    """Normalize the ledger store name; unknown values raise ValueError."""
    value = (raw or LEDGER_STORE_API).strip().lower()
    if value not in {LEDGER_STORE_API, LEDGER_STORE_SUPABASE}:
        raise ValueError(f"Unknown ledger store: {raw!r}")
    return value
