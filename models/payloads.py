"""Typed views over the raw JSON bodies returned by upstream providers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)


class PayloadError(ValueError):
    """Raised when an upstream body does not have the expected shape."""


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Coerce an ISO-8601 string or epoch seconds into an aware UTC datetime.

    Returns ``None`` for anything that cannot be interpreted as an instant.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if not isinstance(value, str):
        return None

    candidate = value.strip()
    if not candidate:
        return None
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class PurpleAirPayload:
    """Columnar history body: a ``fields`` header and ``data`` rows."""

    fields: List[str] = field(default_factory=list)
    data: List[List[Any]] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "PurpleAirPayload":
        return cls(fields=[], data=[], raw={"fields": [], "data": []})

    @classmethod
    def parse(cls, raw: Any) -> "PurpleAirPayload":
        if not isinstance(raw, dict):
            raise PayloadError("PurpleAir body must be a JSON object.")

        field_names = raw.get("fields")
        rows = raw.get("data")
        if not isinstance(field_names, list) or not all(
            isinstance(name, str) for name in field_names
        ):
            raise PayloadError("PurpleAir body 'fields' must be a list of strings.")
        if not isinstance(rows, list) or not all(isinstance(row, list) for row in rows):
            raise PayloadError("PurpleAir body 'data' must be a list of rows.")

        return cls(fields=list(field_names), data=[list(row) for row in rows], raw=raw)

    @property
    def is_empty(self) -> bool:
        return not self.fields or not self.data


@dataclass(frozen=True)
class AcuRiteSample:
    """One time point of one AcuRite channel."""

    happened_at: Optional[datetime] = None
    raw_values: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def parse(cls, raw: Any) -> "AcuRiteSample":
        # Malformed samples become blanks so the channel keeps its index alignment.
        if not isinstance(raw, dict):
            return cls()
        values = raw.get("raw_values")
        return cls(
            happened_at=parse_timestamp(raw.get("happened_at")),
            raw_values=dict(values) if isinstance(values, dict) else {},
        )


@dataclass(frozen=True)
class AcuRitePayload:
    """Channel-keyed summaries body: channel id -> chronological samples."""

    channels: Dict[str, List[AcuRiteSample]] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "AcuRitePayload":
        return cls(channels={}, raw={})

    @classmethod
    def parse(cls, raw: Any) -> "AcuRitePayload":
        if not isinstance(raw, dict):
            raise PayloadError("AcuRite body must be a JSON object.")

        channels: Dict[str, List[AcuRiteSample]] = {}
        for channel_id, samples in raw.items():
            if not isinstance(samples, list):
                logger.warning(
                    "Skipping AcuRite channel %r without a sample list",
                    channel_id,
                    extra={"reason": f"channel holds {type(samples).__name__}"},
                )
                continue
            channels[str(channel_id)] = [AcuRiteSample.parse(sample) for sample in samples]

        return cls(channels=channels, raw=raw)

    @property
    def is_empty(self) -> bool:
        return not self.channels
