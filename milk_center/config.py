"""Central configuration for the milk center client."""
from __future__ import annotations

from decimal import Decimal
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = BASE_DIR / "data"

DATA_DIR.mkdir(parents=True, exist_ok=True)

# Exact body message the backend sends when a principal's role has been revoked.
ACCESS_DENIED_MESSAGE = "Access denied. Admin or user role required."


class Settings(BaseSettings):
    # Backend
    api_base_url: str = "http://localhost:5000/api"
    request_timeout_seconds: float = 10.0

    # Session
    session_file: Path = DATA_DIR / "session.json"
    forced_logout_delay_seconds: float = 3.0

    # Collections
    manual_edit_tolerance: Decimal = Decimal("0.01")
    timezone: str = "Asia/Kolkata"

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="MILK_CENTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


SETTINGS = Settings()
