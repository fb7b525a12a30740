from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_CATALOG_PATH_ENV = "SENSOR_CATALOG_PATH"
_DATABASE_URL_ENV = "DATABASE_URL"
_PURPLEAIR_URL_ENV = "PURPLEAIR_API_URL"
_PURPLEAIR_KEY_ENV = "PURPLEAIR_API_KEY"
_PURPLEAIR_TIMEOUT_ENV = "PURPLEAIR_TIMEOUT_SECONDS"
_PURPLEAIR_LOOKBACK_ENV = "PURPLEAIR_LOOKBACK_HOURS"
_PURPLEAIR_LIMIT_ENV = "PURPLEAIR_HISTORY_LIMIT"
_ACURITE_URL_ENV = "ACURITE_API_URL"
_ACURITE_TIMEOUT_ENV = "ACURITE_TIMEOUT_SECONDS"
_ACURITE_LIMIT_ENV = "ACURITE_HISTORY_LIMIT"
_ALWAYS_FETCH_FRESH_ENV = "ALWAYS_FETCH_FRESH"
_WORKER_COUNT_ENV = "ORCHESTRATOR_WORKER_COUNT"
_SEED_ON_STARTUP_ENV = "SEED_SENSORS_ON_STARTUP"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    catalog_path: str
    database_url: str
    purpleair_api_url: str
    purpleair_api_key: Optional[str]
    purpleair_timeout: float
    purpleair_lookback_hours: int
    purpleair_history_limit: int
    acurite_api_url: str
    acurite_timeout: float
    acurite_history_limit: int
    always_fetch_fresh: bool
    orchestrator_workers: int
    seed_sensors_on_startup: bool
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUTHY:
        return True
    if candidate in _FALSY:
        return False
    return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        catalog_path=_read_str_env(_CATALOG_PATH_ENV, "./data/sensors.json"),
        database_url=_read_str_env(_DATABASE_URL_ENV, "sqlite:///./tmp/envirodash.db"),
        purpleair_api_url=_read_str_env(_PURPLEAIR_URL_ENV, "https://api.purpleair.com/v1"),
        purpleair_api_key=_read_optional_env(_PURPLEAIR_KEY_ENV, None),
        purpleair_timeout=_read_positive_float(_PURPLEAIR_TIMEOUT_ENV, 20.0),
        purpleair_lookback_hours=_read_positive_int(_PURPLEAIR_LOOKBACK_ENV, 6),
        purpleair_history_limit=_read_positive_int(_PURPLEAIR_LIMIT_ENV, 144),
        acurite_api_url=_read_str_env(_ACURITE_URL_ENV, "https://dataapi.myacurite.com"),
        acurite_timeout=_read_positive_float(_ACURITE_TIMEOUT_ENV, 10.0),
        acurite_history_limit=_read_positive_int(_ACURITE_LIMIT_ENV, 168),
        always_fetch_fresh=_read_bool(_ALWAYS_FETCH_FRESH_ENV, True),
        orchestrator_workers=_read_positive_int(_WORKER_COUNT_ENV, 2),
        seed_sensors_on_startup=_read_bool(_SEED_ON_STARTUP_ENV, False),
        log_level=_read_log_level("INFO"),
    )
