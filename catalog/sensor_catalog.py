"""Read-only catalog of known sensors, loaded once from a JSON file."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from models.records import ProviderType, SensorCatalogEntry
from settings import get_settings

logger = logging.getLogger(__name__)


class CatalogError(RuntimeError):
    """Raised when the catalog file cannot be read at all."""


class UnknownSensorError(KeyError):
    """Raised when a sensor index is not present in the catalog."""

    def __init__(self, sensor_index: int, provider: Optional[ProviderType] = None) -> None:
        self.sensor_index = sensor_index
        self.provider = provider
        label = f"{provider.value} sensor" if provider else "Sensor"
        super().__init__(f"{label} {sensor_index} not found.")

    def __str__(self) -> str:
        return str(self.args[0])


def _optional_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_entry(record: Any) -> SensorCatalogEntry:
    if not isinstance(record, dict):
        raise ValueError("record is not an object")

    try:
        sensor_index = int(record["sensor_index"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError("missing or invalid sensor_index") from exc

    try:
        provider = ProviderType(str(record.get("type", "")).strip().lower())
    except ValueError as exc:
        raise ValueError(f"unknown sensor type {record.get('type')!r}") from exc

    device_id = record.get("device_id")
    device_id = str(device_id).strip() if device_id not in (None, "") else None

    return SensorCatalogEntry(
        sensor_index=sensor_index,
        name=str(record.get("name") or f"Sensor {sensor_index}"),
        latitude=_optional_float(record.get("latitude")),
        longitude=_optional_float(record.get("longitude")),
        provider=provider,
        device_id=device_id or None,
    )


class SensorCatalog:
    """Immutable lookup over catalog entries keyed by ``sensor_index``."""

    def __init__(self, entries: Iterable[SensorCatalogEntry]) -> None:
        self._entries: Dict[int, SensorCatalogEntry] = {}
        for entry in entries:
            if entry.sensor_index in self._entries:
                logger.warning(
                    "Ignoring duplicate catalog entry",
                    extra={"sensor_index": entry.sensor_index},
                )
                continue
            self._entries[entry.sensor_index] = entry

    @classmethod
    def from_records(cls, records: Iterable[Any]) -> "SensorCatalog":
        entries: List[SensorCatalogEntry] = []
        for position, record in enumerate(records):
            try:
                entries.append(_parse_entry(record))
            except ValueError as exc:
                logger.warning(
                    "Skipping catalog record %d",
                    position,
                    extra={"reason": str(exc)},
                )
        return cls(entries)

    @classmethod
    def from_path(cls, path: Path) -> "SensorCatalog":
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise CatalogError(f"Unable to read sensor catalog {path}: {exc}") from exc
        if not isinstance(raw, list):
            raise CatalogError(f"Sensor catalog {path} must contain a JSON array.")

        catalog = cls.from_records(raw)
        logger.info("Loaded %d catalog sensors from %s", len(catalog), path)
        return catalog

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> List[SensorCatalogEntry]:
        return list(self._entries.values())

    def get(
        self, sensor_index: int, provider: Optional[ProviderType] = None
    ) -> Optional[SensorCatalogEntry]:
        entry = self._entries.get(sensor_index)
        if entry is None:
            return None
        if provider is not None and entry.provider is not provider:
            return None
        return entry

    def require(
        self, sensor_index: int, provider: Optional[ProviderType] = None
    ) -> SensorCatalogEntry:
        entry = self.get(sensor_index, provider)
        if entry is None:
            raise UnknownSensorError(sensor_index, provider)
        return entry

    def by_provider(self, provider: ProviderType) -> List[SensorCatalogEntry]:
        return [entry for entry in self._entries.values() if entry.provider is provider]

    def by_device_id(self, device_id: str) -> Optional[SensorCatalogEntry]:
        for entry in self._entries.values():
            if entry.device_id == device_id:
                return entry
        return None


@lru_cache
def build_default_catalog(path: Optional[str] = None) -> SensorCatalog:
    settings = get_settings()
    catalog_path = settings.catalog_path if path is None else path
    return SensorCatalog.from_path(Path(catalog_path))
