"""Fresh-data pipeline: fetch live, normalize, persist, read back, respond."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from catalog.sensor_catalog import SensorCatalog, UnknownSensorError, build_default_catalog
from datastore.database import PersistenceError, build_default_engine
from datastore.reading_store import ReadingStore
from datastore.sensor_registry import SensorRegistry
from logging_config import sensor_context
from models.payloads import AcuRitePayload, PurpleAirPayload
from models.records import (
    CanonicalReading,
    PersistedSensor,
    ProviderType,
    SensorCatalogEntry,
    TimeRange,
)
from models.results import StageResult
from services.normalizer import normalize
from settings import get_settings
from upstream.acurite import AcuRiteAdapter, AcuRiteWindow
from upstream.purpleair import PurpleAirAdapter

logger = logging.getLogger(__name__)

Payload = Union[PurpleAirPayload, AcuRitePayload]


@dataclass
class FreshData:
    """Response of one pipeline run. ``historical`` is authoritative, ``live`` best effort."""

    live: Dict[str, Any]
    historical: List[Dict[str, Any]]
    timestamp: datetime
    sensor_index: int
    inserted: int = 0
    errors: List[str] = field(default_factory=list)


def _empty_payload(provider: ProviderType) -> Payload:
    if provider is ProviderType.purpleair:
        return PurpleAirPayload.empty()
    return AcuRitePayload.empty()


class FreshDataOrchestrator:
    """Runs the fetch → normalize → persist → read-back pipeline for one sensor.

    Every stage degrades on its own: a failed fetch serves an empty payload, a
    failed write is logged and dropped, and a failed read-back serves an empty
    history. Only an unknown sensor is surfaced to the caller.
    """

    def __init__(
        self,
        catalog: SensorCatalog,
        registry: SensorRegistry,
        store: ReadingStore,
        purpleair: PurpleAirAdapter,
        acurite: AcuRiteAdapter,
        purpleair_history_limit: int = 144,
        acurite_history_limit: int = 168,
        always_fetch_fresh: bool = True,
        workers: int = 2,
    ) -> None:
        self.catalog = catalog
        self.registry = registry
        self.store = store
        self.purpleair = purpleair
        self.acurite = acurite
        self.history_limits = {
            ProviderType.purpleair: purpleair_history_limit,
            ProviderType.acurite: acurite_history_limit,
        }
        self.always_fetch_fresh = always_fetch_fresh
        self.executor = ThreadPoolExecutor(max_workers=workers)

    def shutdown(self) -> None:
        """Release the listing executor and upstream HTTP clients."""
        self.executor.shutdown(wait=False, cancel_futures=True)
        self.purpleair.close()
        self.acurite.close()

    def require_sensor(self, sensor_index: int, provider: ProviderType) -> SensorCatalogEntry:
        entry = self.catalog.require(sensor_index, provider)
        if provider is ProviderType.acurite and not entry.device_id:
            raise UnknownSensorError(sensor_index, provider)
        return entry

    def purpleair_history(
        self,
        sensor_index: int,
        start_timestamp: Optional[int] = None,
        average: Optional[int] = None,
        fields: Optional[str] = None,
        time_range: Optional[TimeRange] = None,
    ) -> FreshData:
        entry = self.require_sensor(sensor_index, ProviderType.purpleair)
        window = self.purpleair.build_window(
            start_timestamp=start_timestamp,
            average=average,
            fields=fields,
            time_range=time_range,
        )
        return self.serve(entry, lambda: self.purpleair.fetch_live(entry, window), time_range)

    def acurite_live(
        self,
        sensor_index: int,
        date: Optional[str] = None,
        time_range: Optional[TimeRange] = None,
    ) -> FreshData:
        entry = self.require_sensor(sensor_index, ProviderType.acurite)
        window = AcuRiteWindow.for_date(date)
        return self.serve(entry, lambda: self.acurite.fetch_live(entry, window), time_range)

    def serve(
        self,
        entry: SensorCatalogEntry,
        fetch: Callable[[], StageResult[Payload]],
        time_range: Optional[TimeRange] = None,
    ) -> FreshData:
        started = time.perf_counter()
        context = sensor_context(entry)
        errors: List[str] = []

        fetched = self._fetch(entry, fetch)
        if fetched.error:
            errors.append(f"{fetched.error.stage}: {fetched.error.reason}")

        readings = normalize(entry.provider, fetched.value)

        inserted = 0
        if readings:
            persisted = self.ingest(entry, readings)
            inserted = persisted.value
            if persisted.error:
                errors.append(f"{persisted.error.stage}: {persisted.error.reason}")

        since = None
        if time_range is not None:
            since = datetime.now(timezone.utc) - timedelta(hours=time_range.hours)
        history = self.read_back(entry, since)
        if history.error:
            errors.append(f"{history.error.stage}: {history.error.reason}")

        logger.info(
            "Served fresh data with %d readings and %d historical rows",
            len(readings),
            len(history.value),
            extra={
                **context,
                "inserted": inserted,
                "elapsed_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        return FreshData(
            live=fetched.value.raw,
            historical=history.value,
            timestamp=datetime.now(timezone.utc),
            sensor_index=entry.sensor_index,
            inserted=inserted,
            errors=errors,
        )

    def ingest(
        self, entry: SensorCatalogEntry, readings: List[CanonicalReading]
    ) -> StageResult[int]:
        """Resolve the sensor identity and write ``readings``; nothing happens for an empty list."""
        if not readings:
            return StageResult.success(0)

        try:
            sensor = self.registry.resolve(entry.sensor_index)
            return StageResult.success(self.store.persist(sensor.id, entry.provider, readings))
        except (UnknownSensorError, PersistenceError, SQLAlchemyError) as exc:
            reason = str(exc)

        logger.error(
            "Dropping readings that could not be persisted",
            extra=sensor_context(entry, stage="persist", reason=reason),
        )
        return StageResult.failure(0, stage="persist", reason=reason)

    def read_back(
        self, entry: SensorCatalogEntry, since: Optional[datetime] = None
    ) -> StageResult[List[Dict[str, Any]]]:
        try:
            sensor = self.registry.get(entry.sensor_index)
            if sensor is None:
                return StageResult.success([])
            rows = self.store.latest(
                sensor.id,
                entry.provider,
                limit=self.history_limits[entry.provider],
                since=since,
            )
        except SQLAlchemyError as exc:
            logger.error(
                "Historical read failed, serving empty history",
                extra=sensor_context(entry, stage="read_back", reason=str(exc)),
            )
            return StageResult.failure([], stage="read_back", reason=str(exc))
        return StageResult.success(rows)

    def list_sensors(self) -> Dict[ProviderType, List[PersistedSensor]]:
        """List stored sensors of both providers concurrently.

        The two listings are joined as one outcome: if either fails, its
        exception propagates and the other result is discarded.
        """
        futures = {
            provider: self.executor.submit(self.registry.list_by_provider, provider)
            for provider in (ProviderType.purpleair, ProviderType.acurite)
        }
        return {provider: future.result() for provider, future in futures.items()}

    def _fetch(
        self, entry: SensorCatalogEntry, fetch: Callable[[], StageResult[Payload]]
    ) -> StageResult[Payload]:
        empty = _empty_payload(entry.provider)
        if not self.always_fetch_fresh:
            return StageResult.failure(empty, stage="fetch", reason="live fetch disabled")
        try:
            return fetch()
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "Adapter raised unexpectedly, serving empty payload",
                extra=sensor_context(entry, stage="fetch"),
            )
            return StageResult.failure(empty, stage="fetch", reason=str(exc))


@lru_cache
def build_default_orchestrator() -> FreshDataOrchestrator:
    """Factory that wires the orchestrator from settings."""
    settings = get_settings()
    catalog = build_default_catalog()
    engine = build_default_engine()
    return FreshDataOrchestrator(
        catalog=catalog,
        registry=SensorRegistry(engine, catalog),
        store=ReadingStore(engine),
        purpleair=PurpleAirAdapter(
            base_url=settings.purpleair_api_url,
            api_key=settings.purpleair_api_key,
            timeout=settings.purpleair_timeout,
            lookback_hours=settings.purpleair_lookback_hours,
        ),
        acurite=AcuRiteAdapter(
            base_url=settings.acurite_api_url,
            timeout=settings.acurite_timeout,
        ),
        purpleair_history_limit=settings.purpleair_history_limit,
        acurite_history_limit=settings.acurite_history_limit,
        always_fetch_fresh=settings.always_fetch_fresh,
        workers=settings.orchestrator_workers,
    )
