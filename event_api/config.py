from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_SQLITE_PATH = BASE_DIR / "event_api.db"
DEFAULT_SQLITE_URL = f"sqlite:///{DEFAULT_SQLITE_PATH}"
DEFAULT_SEED_PATH = BASE_DIR / "data" / "example_data.json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=BASE_DIR / ".env", env_prefix="EVENT_API_", case_sensitive=False)

    database_url: str = Field(default=DEFAULT_SQLITE_URL, description="SQLAlchemy database URL")
    sql_echo: bool = Field(default=False, description="Log every SQL statement")
    # Comma-separated values or '*' for all
    cors_origins: str = Field(default="*")
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    seed_data_path: Path = Field(default=DEFAULT_SEED_PATH)

    @field_validator("database_url")
    @classmethod
    def _normalise_postgres_scheme(cls, value: str) -> str:
        # SQLAlchemy only understands the postgresql:// scheme
        if value.startswith("postgres://"):
            return value.replace("postgres://", "postgresql://", 1)
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.strip().upper()

    @property
    def cors_origins_list(self) -> List[str]:
        s = (self.cors_origins or "").strip()
        if not s or s == "*":
            return ["*"]
        return [part.strip() for part in s.split(",") if part.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
