"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class ProviderType(str, Enum):
    """Upstream telemetry providers known to the catalog."""

    purpleair = "purpleair"
    acurite = "acurite"


@dataclass(frozen=True, slots=True)
class SensorCatalogEntry:
    """A sensor as described by the static catalog file."""

    sensor_index: int
    name: str
    latitude: Optional[float]
    longitude: Optional[float]
    provider: ProviderType
    device_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sensor_index": self.sensor_index,
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "type": self.provider.value,
            "device_id": self.device_id,
        }


@dataclass(frozen=True, slots=True)
class PersistedSensor:
    """Stored sensor identity, created on first successful ingestion."""

    id: int
    sensor_index: int
    name: str
    latitude: Optional[float]
    longitude: Optional[float]
    provider: ProviderType
    device_id: Optional[str]
    created_at: Optional[datetime] = None


@dataclass(slots=True)
class CanonicalReading:
    """Provider-agnostic measurements of one sensor at one instant."""

    timestamp: Optional[datetime]
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    pressure: Optional[float] = None
    pm25: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[float] = None
    rainfall: Optional[float] = None

    def has_values(self) -> bool:
        return any(value is not None for value in self.values().values())

    def is_valid(self) -> bool:
        return self.timestamp is not None and self.has_values()

    def values(self) -> Dict[str, Optional[float]]:
        """Measurement fields keyed by name, excluding the timestamp."""
        return {
            field.name: getattr(self, field.name)
            for field in fields(self)
            if field.name != "timestamp"
        }


class TimeRange(str, Enum):
    """Named lookback windows offered to callers."""

    six_hours = "6h"
    day = "24h"
    week = "7d"

    @property
    def hours(self) -> int:
        return {"6h": 6, "24h": 24, "7d": 24 * 7}[self.value]

    @property
    def average_minutes(self) -> int:
        """PurpleAir averaging interval that keeps the row count manageable."""
        return {"6h": 10, "24h": 60, "7d": 360}[self.value]
