"""Runtime configuration resolved once from the environment."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

from fx_mirror.ingestion.fetcher import END_PLACEHOLDER, START_PLACEHOLDER

DEFAULT_ENV_FILE = Path("config") / ".env"
DEFAULT_CONNECTIONS_FILE = Path("config") / "db-connections.json"
DEFAULT_FETCH_TIME = "00:00:01"

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d:[0-5]\d$")
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


class ConfigError(ValueError):
    """Raised when an environment variable holds an unusable value."""


@dataclass(frozen=True)
class Settings:
    """Immutable view of the service configuration."""

    currencies: tuple[str, ...]
    exchange_rate_url: str
    fetch_time: str = DEFAULT_FETCH_TIME
    debug: bool = False
    debug_fetch_interval_ms: int = 5000
    planned_rate: str | None = None
    connections_file: Path = DEFAULT_CONNECTIONS_FILE
    max_retries: int = 3
    retry_delay_ms: int = 5000
    request_timeout_ms: int = 5000
    log_dir: Path | None = None
    log_level: str = "INFO"
    ensure_schema: bool = False
    scheduler_max_workers: int = 4

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay_ms / 1000

    @property
    def request_timeout_seconds(self) -> float:
        return self.request_timeout_ms / 1000

    @property
    def debug_fetch_interval_seconds(self) -> float:
        return self.debug_fetch_interval_ms / 1000

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from ``env`` (defaults to ``os.environ``)."""

        source = os.environ if env is None else env

        currencies = parse_currencies(source.get("CURRENCIES"))
        url = (source.get("EXCHANGE_RATE_URL") or "").strip()
        if not url:
            raise ConfigError("EXCHANGE_RATE_URL must be set")
        missing = [token for token in (START_PLACEHOLDER, END_PLACEHOLDER) if token not in url]
        if missing:
            raise ConfigError(f"EXCHANGE_RATE_URL is missing placeholder(s): {', '.join(missing)}")

        fetch_time = (source.get("FETCH_TIME") or DEFAULT_FETCH_TIME).strip()
        if not _TIME_PATTERN.match(fetch_time):
            raise ConfigError(f"FETCH_TIME must use HH:MM:SS, got {fetch_time!r}")

        debug = _parse_bool(source, "DEBUG", False)
        log_dir = (source.get("LOG_DIR") or "").strip()
        planned = source.get("PLANSKI_KURS")

        return cls(
            currencies=currencies,
            exchange_rate_url=url,
            fetch_time=fetch_time,
            debug=debug,
            debug_fetch_interval_ms=_parse_int(source, "DEBUG_FETCH_INTERVAL", 5000, minimum=1),
            planned_rate=planned.strip() if planned is not None and planned.strip() else None,
            connections_file=Path(
                source.get("DB_CONNECTIONS_FILE") or DEFAULT_CONNECTIONS_FILE
            ),
            max_retries=_parse_int(source, "MAX_RETRIES", 3, minimum=0),
            retry_delay_ms=_parse_int(source, "RETRY_DELAY_MS", 5000, minimum=0),
            request_timeout_ms=_parse_int(source, "REQUEST_TIMEOUT_MS", 5000, minimum=1),
            log_dir=Path(log_dir) if log_dir else None,
            log_level=(source.get("LOG_LEVEL") or ("DEBUG" if debug else "INFO")).upper(),
            ensure_schema=_parse_bool(source, "ENSURE_SCHEMA", False),
            scheduler_max_workers=_parse_int(source, "SCHEDULER_MAX_WORKERS", 4, minimum=1),
        )


def load_settings(env_file: str | Path | None = None) -> Settings:
    """Load ``env_file`` (``config/.env`` by default) and read the settings.

    Variables already present in the process environment take precedence over
    the file, and a missing file is not an error.
    """

    load_dotenv(env_file or DEFAULT_ENV_FILE, override=False)
    return Settings.from_env()


def parse_currencies(raw: str | None) -> tuple[str, ...]:
    """Split the comma separated allow-list, dropping blanks."""

    if raw is None:
        raise ConfigError("CURRENCIES must be set")
    currencies = tuple(item.strip() for item in raw.split(",") if item.strip())
    if not currencies:
        raise ConfigError("CURRENCIES must list at least one currency code")
    return currencies


def _parse_bool(source: Mapping[str, str], name: str, default: bool) -> bool:
    raw = source.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _parse_int(source: Mapping[str, str], name: str, default: int, *, minimum: int) -> int:
    raw = source.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"{name} must be at least {minimum}, got {value}")
    return value


__all__ = ["ConfigError", "Settings", "load_settings", "parse_currencies"]
