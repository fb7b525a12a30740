"""Relational schema and engine construction."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Type, Union

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, UniqueConstraint, create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from models.records import ProviderType
from settings import get_settings

logger = logging.getLogger(__name__)


class PersistenceError(RuntimeError):
    """Raised when the relational store cannot be reached or written."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class SensorRow(Base):
    __tablename__ = "sensors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sensor_index: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    device_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class PurpleAirReadingRow(Base):
    __tablename__ = "purpleair_readings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sensor_id: Mapped[int] = mapped_column(ForeignKey("sensors.id"), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    temperature: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    humidity: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    pressure: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    pm25: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        UniqueConstraint("sensor_id", "timestamp", name="uq_purpleair_sensor_timestamp"),
    )


class AcuRiteReadingRow(Base):
    __tablename__ = "acurite_readings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sensor_id: Mapped[int] = mapped_column(ForeignKey("sensors.id"), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    temperature: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    humidity: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    wind_speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    wind_direction: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    pressure: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    rainfall: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        UniqueConstraint("sensor_id", "timestamp", name="uq_acurite_sensor_timestamp"),
    )


ReadingRow = Union[PurpleAirReadingRow, AcuRiteReadingRow]

READING_TABLES: Dict[ProviderType, Type[ReadingRow]] = {
    ProviderType.purpleair: PurpleAirReadingRow,
    ProviderType.acurite: AcuRiteReadingRow,
}


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; every stored instant is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def build_engine(url: str, create_schema: bool = True) -> Engine:
    parsed = make_url(url)
    connect_args: dict = {}
    if parsed.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
        if parsed.database and parsed.database != ":memory:":
            Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)

    logger.info(
        "Creating database engine backend=%s database=%s",
        parsed.get_backend_name(),
        parsed.database,
    )
    engine = create_engine(url, pool_pre_ping=True, future=True, connect_args=connect_args)
    if create_schema:
        Base.metadata.create_all(engine)
    return engine


@lru_cache
def build_default_engine(url: Optional[str] = None) -> Engine:
    settings = get_settings()
    return build_engine(settings.database_url if url is None else url)
