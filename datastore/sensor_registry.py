"""Maps catalog sensors to persisted identities, creating them on first sight."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from catalog.sensor_catalog import SensorCatalog
from datastore.database import PersistenceError, SensorRow, as_utc
from models.records import PersistedSensor, ProviderType, SensorCatalogEntry

logger = logging.getLogger(__name__)


def _to_domain(row: SensorRow) -> PersistedSensor:
    return PersistedSensor(
        id=row.id,
        sensor_index=row.sensor_index,
        name=row.name,
        latitude=row.latitude,
        longitude=row.longitude,
        provider=ProviderType(row.type),
        device_id=row.device_id,
        created_at=as_utc(row.created_at),
    )


def _new_row(entry: SensorCatalogEntry) -> SensorRow:
    return SensorRow(
        sensor_index=entry.sensor_index,
        name=entry.name,
        latitude=entry.latitude,
        longitude=entry.longitude,
        type=entry.provider.value,
        device_id=entry.device_id,
    )


class SensorRegistry:
    """Resolves ``sensor_index`` to exactly one stored sensor row.

    The unique constraint on ``sensors.sensor_index`` is the only
    coordination between concurrent resolvers: the loser of an insert race
    reads back the winner's row.
    """

    def __init__(self, engine: Engine, catalog: SensorCatalog) -> None:
        self.engine = engine
        self.catalog = catalog

    def get(self, sensor_index: int) -> Optional[PersistedSensor]:
        with Session(self.engine) as session:
            row = self._find(session, sensor_index)
            return _to_domain(row) if row is not None else None

    def resolve(self, sensor_index: int) -> PersistedSensor:
        """Return the stored identity, inserting it from the catalog if needed.

        Raises ``UnknownSensorError`` when the catalog has no such sensor.
        """
        entry = self.catalog.require(sensor_index)

        existing = self.get(sensor_index)
        if existing is not None:
            return existing

        try:
            with Session(self.engine) as session, session.begin():
                row = _new_row(entry)
                session.add(row)
                session.flush()
                created = _to_domain(row)
        except IntegrityError:
            logger.info(
                "Sensor created concurrently, reading back",
                extra={"sensor_index": sensor_index},
            )
            winner = self.get(sensor_index)
            if winner is None:
                raise PersistenceError(
                    f"Sensor {sensor_index} conflicted on insert but could not be read back."
                )
            return winner

        logger.info(
            "Registered sensor",
            extra={"sensor_index": sensor_index, "provider": entry.provider.value},
        )
        return created

    def list_by_provider(self, provider: ProviderType) -> List[PersistedSensor]:
        with Session(self.engine) as session:
            rows = session.scalars(
                select(SensorRow)
                .where(SensorRow.type == provider.value)
                .order_by(SensorRow.sensor_index)
            ).all()
            return [_to_domain(row) for row in rows]

    def seed_from_catalog(self) -> Tuple[int, int]:
        """Insert every catalog sensor that is not stored yet; returns (added, existing)."""
        added = 0
        existing = 0
        for entry in self.catalog.entries():
            try:
                with Session(self.engine) as session, session.begin():
                    if self._find(session, entry.sensor_index) is not None:
                        existing += 1
                        continue
                    session.add(_new_row(entry))
                added += 1
            except IntegrityError:
                existing += 1
            except SQLAlchemyError as exc:
                logger.error(
                    "Failed to seed sensor",
                    extra={"sensor_index": entry.sensor_index, "reason": str(exc)},
                )

        logger.info("Seeded sensors from catalog: %d added, %d existing", added, existing)
        return added, existing

    @staticmethod
    def _find(session: Session, sensor_index: int) -> Optional[SensorRow]:
        return session.scalars(
            select(SensorRow).where(SensorRow.sensor_index == sensor_index).limit(1)
        ).first()
