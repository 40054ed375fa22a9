from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Transfer Ledger API"
    database_url: str = "sqlite:///transfer_ledger.db"
    log_level: str = "INFO"
    sqlite_busy_timeout: float = 30.0
    conflict_retry_limit: int = 3
    login_attempt_limit: int = 5
    login_block_minutes: int = 30

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LEDGER_",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
