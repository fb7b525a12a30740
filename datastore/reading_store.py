"""Idempotent persistence and read-back of canonical readings."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import func, insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from datastore.database import READING_TABLES, PersistenceError, ReadingRow, as_utc
from models.records import CanonicalReading, ProviderType

logger = logging.getLogger(__name__)

_CONFLICT_COLUMNS = ("sensor_id", "timestamp")


class ReadingStore:
    """Writes readings keyed by (sensor_id, timestamp); the first write of a key wins."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def persist(
        self,
        sensor_id: int,
        provider: ProviderType,
        readings: Sequence[CanonicalReading],
    ) -> int:
        """Insert ``readings`` ignoring duplicate keys; returns the number of new rows.

        Rows that fail individually are logged and skipped. A lost connection
        drops the rest of the batch and raises ``PersistenceError``.
        """
        if not readings:
            return 0

        table = READING_TABLES[provider]
        columns = {column.name for column in table.__table__.columns}
        inserted = 0
        submitted = 0

        for reading in readings:
            if not reading.is_valid():
                continue
            submitted += 1
            values = self._row_values(sensor_id, reading, columns)
            try:
                with self.engine.begin() as conn:
                    result = conn.execute(self._insert_ignoring_duplicates(table, values))
                    inserted += max(result.rowcount or 0, 0)
            except IntegrityError:
                # Backends without ON CONFLICT support report the duplicate instead.
                continue
            except OperationalError as exc:
                logger.error(
                    "Database unavailable, dropping reading batch",
                    extra={
                        "provider": provider.value,
                        "submitted": len(readings),
                        "inserted": inserted,
                        "reason": str(exc.orig or exc),
                    },
                )
                raise PersistenceError("Database unavailable while writing readings.") from exc
            except SQLAlchemyError as exc:
                logger.warning(
                    "Skipping reading that failed to insert",
                    extra={
                        "provider": provider.value,
                        "timestamp": values["timestamp"].isoformat(),
                        "reason": str(exc),
                    },
                )

        logger.info(
            "Persisted readings",
            extra={"provider": provider.value, "submitted": submitted, "inserted": inserted},
        )
        return inserted

    def latest(
        self,
        sensor_id: int,
        provider: ProviderType,
        limit: int,
        since: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """Most recent stored rows for a sensor, newest first."""
        table = READING_TABLES[provider].__table__
        query = select(table).where(table.c.sensor_id == sensor_id)
        if since is not None:
            query = query.where(table.c.timestamp >= since.astimezone(timezone.utc))
        query = query.order_by(table.c.timestamp.desc()).limit(limit)

        with self.engine.connect() as conn:
            rows = conn.execute(query).mappings().all()
        return [self._serialize(row) for row in rows]

    def count(self, sensor_id: int, provider: ProviderType) -> int:
        table = READING_TABLES[provider].__table__
        with self.engine.connect() as conn:
            return conn.execute(
                select(func.count()).select_from(table).where(table.c.sensor_id == sensor_id)
            ).scalar_one()

    def _insert_ignoring_duplicates(self, table: type[ReadingRow], values: Dict[str, Any]):
        backend = self.engine.dialect.name
        if backend == "sqlite":
            return sqlite.insert(table.__table__).values(**values).on_conflict_do_nothing(
                index_elements=list(_CONFLICT_COLUMNS)
            )
        if backend == "postgresql":
            return postgresql.insert(table.__table__).values(**values).on_conflict_do_nothing(
                index_elements=list(_CONFLICT_COLUMNS)
            )
        return insert(table.__table__).values(**values)

    @staticmethod
    def _row_values(
        sensor_id: int, reading: CanonicalReading, columns: Iterable[str]
    ) -> Dict[str, Any]:
        values: Dict[str, Any] = {
            "sensor_id": sensor_id,
            "timestamp": reading.timestamp.astimezone(timezone.utc),
            "created_at": datetime.now(timezone.utc),
        }
        for name, value in reading.values().items():
            if name in columns:
                values[name] = value
        return values

    @staticmethod
    def _serialize(row: Any) -> Dict[str, Any]:
        payload = dict(row)
        payload["timestamp"] = as_utc(payload.get("timestamp"))
        payload["created_at"] = as_utc(payload.get("created_at"))
        return payload
