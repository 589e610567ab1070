# app/core/settings.py
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class DbSettings(BaseModel):
    url: str = "sqlite:///institute.db"
    echo: bool = False


class StoreSettings(BaseModel):
    # "db" reads the local users tables, "http" talks to the remote REST store
    backend: Literal["db", "http"] = "db"
    base_url: str = "http://localhost:5000/api"
    timeout: float = 30.0
    token: Optional[str] = None


class UiSettings(BaseModel):
    page_size: int = 10
    date_format: str = "%x"
    operator_name: str = "Reception"


class SecuritySettings(BaseModel):
    bcrypt_rounds: int = 12


class Settings(BaseSettings):
    """Application settings, read from INSTITUTE_* env vars and an optional .env file."""

    model_config = SettingsConfigDict(
        env_prefix="INSTITUTE_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app_name: str = "Institute Admin"
    log_level: str = "INFO"

    db: DbSettings = DbSettings()
    store: StoreSettings = StoreSettings()
    ui: UiSettings = UiSettings()
    security: SecuritySettings = SecuritySettings()


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    return Settings()


_logging_configured = False


def configure_logging(settings: Settings) -> None:
    """Install the root handler once; Streamlit reruns the entry script on every interaction."""
    global _logging_configured
    if _logging_configured:
        return
    logging.basicConfig(
        level=getattr(logging, str(settings.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    _logging_configured = True
