"""Conversion of provider payloads into canonical readings."""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, List, Optional, Union

from models.payloads import AcuRitePayload, PurpleAirPayload, parse_timestamp
from models.records import CanonicalReading, ProviderType

logger = logging.getLogger(__name__)

Payload = Union[PurpleAirPayload, AcuRitePayload]

PURPLEAIR_TIME_FIELD = "time_stamp"
PURPLEAIR_FIELD_MAP: Dict[str, str] = {
    "temperature": "temperature",
    "humidity": "humidity",
    "pressure": "pressure",
    "pm2.5_alt": "pm25",
}

# unit key -> (canonical field, first value wins)
ACURITE_UNIT_MAP: Dict[str, tuple[str, bool]] = {
    "F": ("temperature", True),
    "RH": ("humidity", False),
    "MPH": ("wind_speed", True),
    "HPA": ("pressure", False),
}
# The same unit key appears on unrelated channels; these only count on one channel.
ACURITE_RAINFALL_CHANNEL = "10"
ACURITE_RAINFALL_UNIT = "IN"
ACURITE_WIND_DIRECTION_CHANNEL = "4"
ACURITE_WIND_DIRECTION_UNIT = ""


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def normalize_purpleair(payload: PurpleAirPayload) -> List[CanonicalReading]:
    """Zip the ``fields`` header against every row; rows without a time are dropped."""
    readings: List[CanonicalReading] = []
    if payload.is_empty:
        return readings

    for row_number, row in enumerate(payload.data):
        reading = CanonicalReading(timestamp=None)
        for name, value in zip(payload.fields, row):
            if name == PURPLEAIR_TIME_FIELD:
                reading.timestamp = parse_timestamp(value)
                continue
            target = PURPLEAIR_FIELD_MAP.get(name)
            if target is not None:
                setattr(reading, target, _to_float(value))

        if not reading.is_valid():
            logger.debug("Skipping PurpleAir row %d without time or values", row_number)
            continue
        readings.append(reading)

    return readings


def normalize_acurite(payload: AcuRitePayload) -> List[CanonicalReading]:
    """Rebuild one reading per time index by scanning every channel at that index."""
    readings: List[CanonicalReading] = []
    if payload.is_empty:
        return readings

    time_points = min(len(samples) for samples in payload.channels.values())
    for index in range(time_points):
        reading = CanonicalReading(timestamp=None)
        for channel_id, samples in payload.channels.items():
            sample = samples[index]
            if reading.timestamp is None and sample.happened_at is not None:
                reading.timestamp = sample.happened_at

            for unit, raw_value in sample.raw_values.items():
                value = _to_float(raw_value)
                if value is None:
                    continue
                if unit in ACURITE_UNIT_MAP:
                    target, first_wins = ACURITE_UNIT_MAP[unit]
                    if first_wins and getattr(reading, target) is not None:
                        continue
                    setattr(reading, target, value)
                elif unit == ACURITE_RAINFALL_UNIT and channel_id == ACURITE_RAINFALL_CHANNEL:
                    if reading.rainfall is None:
                        reading.rainfall = value
                elif (
                    unit == ACURITE_WIND_DIRECTION_UNIT
                    and channel_id == ACURITE_WIND_DIRECTION_CHANNEL
                ):
                    reading.wind_direction = value

        if not reading.is_valid():
            logger.debug("Skipping AcuRite time index %d without time or values", index)
            continue
        readings.append(reading)

    return readings


_NORMALIZERS: Dict[ProviderType, Callable[[Any], List[CanonicalReading]]] = {
    ProviderType.purpleair: normalize_purpleair,
    ProviderType.acurite: normalize_acurite,
}


def normalize(provider: ProviderType, payload: Payload) -> List[CanonicalReading]:
    """Return canonical readings for ``payload``; empty when it carries nothing usable."""
    expected = PurpleAirPayload if provider is ProviderType.purpleair else AcuRitePayload
    if not isinstance(payload, expected):
        logger.warning(
            "Ignoring %s payload for provider",
            type(payload).__name__,
            extra={"provider": provider.value},
        )
        return []
    return _NORMALIZERS[provider](payload)
