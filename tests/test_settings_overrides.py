from __future__ import annotations

import json
from typing import Iterable

from catalog.sensor_catalog import build_default_catalog
from datastore.database import build_default_engine
from models.records import ProviderType
from services.orchestrator import build_default_orchestrator
from settings import get_settings


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    catalog_path = tmp_path / "sensors.json"
    catalog_path.write_text(
        json.dumps([{"sensor_index": 5, "name": "Roof", "type": "purpleair"}]), encoding="utf-8"
    )
    database_path = tmp_path / "nested" / "readings.db"

    monkeypatch.setenv("SENSOR_CATALOG_PATH", str(catalog_path))
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{database_path}")
    monkeypatch.setenv("PURPLEAIR_API_KEY", "read-key")
    monkeypatch.setenv("PURPLEAIR_HISTORY_LIMIT", "24")
    monkeypatch.setenv("ACURITE_HISTORY_LIMIT", "-3")
    monkeypatch.setenv("ALWAYS_FETCH_FRESH", "off")
    monkeypatch.setenv("ORCHESTRATOR_WORKER_COUNT", "3")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    caches = (
        get_settings,
        build_default_catalog,
        build_default_engine,
        build_default_orchestrator,
    )
    _clear_caches(caches)

    settings = get_settings()
    orchestrator = build_default_orchestrator()

    try:
        assert settings.purpleair_api_key == "read-key"
        assert settings.log_level == "DEBUG"
        assert settings.seed_sensors_on_startup is False
        assert [entry.sensor_index for entry in orchestrator.catalog.entries()] == [5]
        assert database_path.exists()
        assert orchestrator.history_limits == {
            ProviderType.purpleair: 24,
            ProviderType.acurite: 168,
        }
        assert orchestrator.always_fetch_fresh is False
        assert orchestrator.executor._max_workers == 3
    finally:
        orchestrator.shutdown()
        build_default_engine().dispose()
        _clear_caches(caches)


def test_blank_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("PURPLEAIR_API_URL", "   ")
    monkeypatch.setenv("PURPLEAIR_API_KEY", "")
    monkeypatch.setenv("PURPLEAIR_TIMEOUT_SECONDS", "soon")
    monkeypatch.setenv("ALWAYS_FETCH_FRESH", "maybe")
    get_settings.cache_clear()

    try:
        settings = get_settings()
        assert settings.purpleair_api_url == "https://api.purpleair.com/v1"
        assert settings.purpleair_api_key is None
        assert settings.purpleair_timeout == 20.0
        assert settings.always_fetch_fresh is True
    finally:
        get_settings.cache_clear()
