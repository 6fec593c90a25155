"""
Service configuration.

Values come from the environment, with a local .env file loaded first when
one is present.
"""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from backoffice.exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./backoffice.db"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name, default)
    try:
        value = Decimal(raw)
    except InvalidOperation as e:
        raise ConfigurationError(f"{name} must be a decimal amount, got {raw!r}") from e
    if not value.is_finite() or value <= 0:
        raise ConfigurationError(f"{name} must be a positive amount, got {raw!r}")
    return value


@dataclass
class Settings:
    """Runtime settings for the back-office service."""

    database_url: str = DEFAULT_DATABASE_URL
    min_transfer_amount: Decimal = Decimal("1.00")
    transfer_conflict_retries: int = 3
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    admin_token: Optional[str] = None
    sql_echo: bool = False
    auto_create_schema: bool = True
    enforce_transfer_limits: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables (.env aware)."""
        load_dotenv(find_dotenv(usecwd=True), override=False)

        retries = _env_int("TRANSFER_CONFLICT_RETRIES", "3")
        if retries < 0:
            raise ConfigurationError("TRANSFER_CONFLICT_RETRIES must not be negative")

        return cls(
            database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            min_transfer_amount=_env_decimal("MIN_TRANSFER_AMOUNT", "1.00"),
            transfer_conflict_retries=retries,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_dir=Path(os.getenv("LOG_DIR", "logs")),
            admin_token=os.getenv("ADMIN_TOKEN", "").strip() or None,
            sql_echo=_env_bool("SQL_ECHO", "false"),
            auto_create_schema=_env_bool("AUTO_CREATE_SCHEMA", "true"),
            enforce_transfer_limits=_env_bool("ENFORCE_TRANSFER_LIMITS", "false"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
