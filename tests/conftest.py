from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterator

import pytest
from sqlalchemy.engine import Engine

from catalog.sensor_catalog import SensorCatalog
from datastore.database import build_engine
from datastore.reading_store import ReadingStore
from datastore.sensor_registry import SensorRegistry
from models.records import CanonicalReading, ProviderType, SensorCatalogEntry

PURPLEAIR_INDEX = 131075
ACURITE_INDEX = 900001
ACURITE_DEVICE = "24C86E0A1B2C"


def purpleair_entry() -> SensorCatalogEntry:
    return SensorCatalogEntry(
        sensor_index=PURPLEAIR_INDEX,
        name="Downtown Rooftop",
        latitude=40.7608,
        longitude=-111.891,
        provider=ProviderType.purpleair,
    )


def acurite_entry(device_id: str | None = ACURITE_DEVICE) -> SensorCatalogEntry:
    return SensorCatalogEntry(
        sensor_index=ACURITE_INDEX,
        name="Foothill Weather Station",
        latitude=40.7649,
        longitude=-111.8421,
        provider=ProviderType.acurite,
        device_id=device_id,
    )


def reading_at(hour: int, minute: int = 0, **values: float) -> CanonicalReading:
    """Reading on 2024-05-01 at the given UTC time, temperature 70 unless overridden."""
    values.setdefault("temperature", 70.0)
    return CanonicalReading(
        timestamp=datetime(2024, 5, 1, hour, minute, tzinfo=timezone.utc), **values
    )


@pytest.fixture
def catalog() -> SensorCatalog:
    return SensorCatalog([purpleair_entry(), acurite_entry()])


@pytest.fixture
def engine(tmp_path) -> Iterator[Engine]:
    engine = build_engine(f"sqlite:///{tmp_path / 'readings.db'}")
    yield engine
    engine.dispose()


@pytest.fixture
def registry(engine: Engine, catalog: SensorCatalog) -> SensorRegistry:
    return SensorRegistry(engine, catalog)


@pytest.fixture
def store(engine: Engine) -> ReadingStore:
    return ReadingStore(engine)
