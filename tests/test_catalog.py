from __future__ import annotations

import json
from pathlib import Path

import pytest

from catalog.sensor_catalog import (
    CatalogError,
    SensorCatalog,
    UnknownSensorError,
    build_default_catalog,
)
from models.records import ProviderType
from settings import get_settings


def _write_catalog(path: Path, records) -> Path:
    path.write_text(json.dumps(records), encoding="utf-8")
    return path


def test_catalog_loads_entries_from_file(tmp_path) -> None:
    path = _write_catalog(
        tmp_path / "sensors.json",
        [
            {"sensor_index": 1, "name": "Roof", "latitude": 40.1, "longitude": -111.9, "type": "purpleair"},
            {
                "sensor_index": 2,
                "name": "Yard",
                "latitude": "40.2",
                "longitude": None,
                "type": "AcuRite",
                "device_id": "24C86E0A1B2C",
            },
        ],
    )

    catalog = SensorCatalog.from_path(path)

    assert len(catalog) == 2
    yard = catalog.require(2)
    assert yard.provider is ProviderType.acurite
    assert yard.latitude == 40.2
    assert yard.longitude is None
    assert yard.device_id == "24C86E0A1B2C"
    assert catalog.by_device_id("24C86E0A1B2C") is yard
    assert [entry.sensor_index for entry in catalog.by_provider(ProviderType.purpleair)] == [1]


def test_invalid_records_are_skipped() -> None:
    catalog = SensorCatalog.from_records(
        [
            "not a record",
            {"name": "No index", "type": "purpleair"},
            {"sensor_index": "abc", "type": "purpleair"},
            {"sensor_index": 5, "type": "davis"},
            {"sensor_index": 6, "type": "purpleair"},
        ]
    )

    assert [entry.sensor_index for entry in catalog.entries()] == [6]
    assert catalog.require(6).name == "Sensor 6"


def test_duplicate_index_keeps_first_entry() -> None:
    catalog = SensorCatalog.from_records(
        [
            {"sensor_index": 7, "name": "First", "type": "purpleair"},
            {"sensor_index": 7, "name": "Second", "type": "acurite"},
        ]
    )

    assert len(catalog) == 1
    assert catalog.require(7).name == "First"


def test_lookup_is_scoped_by_provider(catalog: SensorCatalog) -> None:
    assert catalog.get(131075, ProviderType.purpleair) is not None
    assert catalog.get(131075, ProviderType.acurite) is None

    with pytest.raises(UnknownSensorError) as excinfo:
        catalog.require(131075, ProviderType.acurite)

    assert excinfo.value.sensor_index == 131075
    assert str(excinfo.value) == "acurite sensor 131075 not found."


def test_unknown_sensor_message_without_provider(catalog: SensorCatalog) -> None:
    with pytest.raises(UnknownSensorError) as excinfo:
        catalog.require(42)

    assert str(excinfo.value) == "Sensor 42 not found."


def test_unreadable_catalog_raises(tmp_path) -> None:
    with pytest.raises(CatalogError):
        SensorCatalog.from_path(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(CatalogError):
        SensorCatalog.from_path(broken)

    with pytest.raises(CatalogError):
        SensorCatalog.from_path(_write_catalog(tmp_path / "object.json", {"sensor_index": 1}))


def test_default_catalog_reads_configured_path(monkeypatch, tmp_path) -> None:
    path = _write_catalog(
        tmp_path / "custom.json", [{"sensor_index": 11, "name": "Custom", "type": "purpleair"}]
    )
    monkeypatch.setenv("SENSOR_CATALOG_PATH", str(path))
    get_settings.cache_clear()
    build_default_catalog.cache_clear()

    try:
        catalog = build_default_catalog()
        assert [entry.sensor_index for entry in catalog.entries()] == [11]
    finally:
        build_default_catalog.cache_clear()
        get_settings.cache_clear()
