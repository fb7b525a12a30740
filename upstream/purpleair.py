"""PurpleAir history API adapter."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx

from logging_config import sensor_context
from models.payloads import PayloadError, PurpleAirPayload
from models.records import SensorCatalogEntry, TimeRange
from models.results import StageResult

logger = logging.getLogger(__name__)

DEFAULT_FIELDS = "temperature, humidity, pm2.5_alt, pressure"
DEFAULT_AVERAGE_MINUTES = 10


@dataclass(frozen=True)
class PurpleAirWindow:
    """Query parameters for one history request."""

    start_timestamp: int
    average: int = DEFAULT_AVERAGE_MINUTES
    fields: str = DEFAULT_FIELDS

    def as_params(self) -> dict[str, str | int]:
        return {
            "start_timestamp": self.start_timestamp,
            "average": self.average,
            "fields": self.fields,
        }


class PurpleAirAdapter:
    """Fetches averaged history for one sensor; never raises on upstream failure."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 20.0,
        lookback_hours: int = 6,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._lookback_hours = lookback_hours
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def build_window(
        self,
        start_timestamp: Optional[int] = None,
        average: Optional[int] = None,
        fields: Optional[str] = None,
        time_range: Optional[TimeRange] = None,
        now: Optional[datetime] = None,
    ) -> PurpleAirWindow:
        """Fill unspecified query parameters from the named range or the defaults."""
        current = now or datetime.now(timezone.utc)
        hours = time_range.hours if time_range else self._lookback_hours
        if start_timestamp is None:
            start_timestamp = int((current - timedelta(hours=hours)).timestamp())
        if average is None:
            average = time_range.average_minutes if time_range else DEFAULT_AVERAGE_MINUTES
        return PurpleAirWindow(
            start_timestamp=start_timestamp,
            average=average,
            fields=fields or DEFAULT_FIELDS,
        )

    def fetch_live(
        self, entry: SensorCatalogEntry, window: PurpleAirWindow
    ) -> StageResult[PurpleAirPayload]:
        context = sensor_context(entry)
        headers = {"X-API-Key": self._api_key} if self._api_key else {}
        started = time.perf_counter()

        try:
            response = self._client.get(
                f"/sensors/{entry.sensor_index}/history",
                params=window.as_params(),
                headers=headers,
                timeout=self._timeout,
            )
            response.raise_for_status()
            payload = PurpleAirPayload.parse(response.json())
        except httpx.HTTPStatusError as exc:
            return self._degraded(f"upstream returned {exc.response.status_code}", context)
        except httpx.HTTPError as exc:
            return self._degraded(f"{type(exc).__name__}: {exc}", context)
        except PayloadError as exc:
            return self._degraded(str(exc), context)
        except ValueError:
            return self._degraded("response body is not valid JSON", context)

        logger.info(
            "Fetched PurpleAir history with %d rows",
            len(payload.data),
            extra={**context, "elapsed_ms": int((time.perf_counter() - started) * 1000)},
        )
        return StageResult.success(payload)

    @staticmethod
    def _degraded(reason: str, context: dict) -> StageResult[PurpleAirPayload]:
        logger.warning("PurpleAir fetch failed, serving empty payload", extra={**context, "reason": reason})
        return StageResult.failure(PurpleAirPayload.empty(), stage="fetch", reason=reason)
