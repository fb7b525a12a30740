"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from models.records import PersistedSensor, ProviderType, SensorCatalogEntry


class CatalogSensor(BaseModel):
    """A sensor as listed in the static catalog."""

    sensor_index: int
    name: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    type: ProviderType
    device_id: Optional[str] = None

    @classmethod
    def from_entry(cls, entry: SensorCatalogEntry) -> "CatalogSensor":
        return cls.model_validate(entry.to_dict())


class RegisteredSensor(CatalogSensor):
    """A sensor that has a stored identity."""

    id: int = Field(..., description="Surrogate identifier of the stored sensor.")
    created_at: Optional[datetime] = None

    @classmethod
    def from_persisted(cls, sensor: PersistedSensor) -> "RegisteredSensor":
        return cls(
            id=sensor.id,
            sensor_index=sensor.sensor_index,
            name=sensor.name,
            latitude=sensor.latitude,
            longitude=sensor.longitude,
            type=sensor.provider,
            device_id=sensor.device_id,
            created_at=sensor.created_at,
        )


class RegisteredSensors(BaseModel):
    """Stored sensors of both providers."""

    purpleair: List[RegisteredSensor] = Field(default_factory=list)
    acurite: List[RegisteredSensor] = Field(default_factory=list)


class FreshDataResponse(BaseModel):
    """Live upstream payload merged with the stored history of one sensor."""

    live: Dict[str, Any] = Field(
        default_factory=dict, description="Raw upstream body, empty when the fetch failed."
    )
    historical: List[Dict[str, Any]] = Field(
        default_factory=list, description="Most recent stored readings, newest first."
    )
    timestamp: datetime
    sensor_index: int


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
