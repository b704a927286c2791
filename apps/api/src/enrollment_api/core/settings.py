from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "sqlite+aiosqlite:///./enrollment.db"
    database_echo: bool = False
    sqlite_busy_timeout_seconds: float = 30.0

    # Internal API security
    admin_api_key: str = ""

    # Invitation lifecycle
    invitation_ttl_seconds: int = 7 * 24 * 60 * 60

    # Reconciliation sweep
    reconcile_batch_limit: int = 500

    # Enrollment maintenance worker (expiry + reconciliation)
    enrollment_maintenance_worker_enabled: bool = False
    enrollment_maintenance_interval_seconds: int = 15 * 60
    enrollment_maintenance_trigger_label: str = "scheduler"


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
