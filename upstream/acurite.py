"""AcuRite hourly summaries adapter."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import httpx

from logging_config import sensor_context
from models.payloads import AcuRitePayload, PayloadError
from models.records import SensorCatalogEntry
from models.results import StageResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AcuRiteWindow:
    """Calendar day whose hourly summaries are requested."""

    date: str

    @classmethod
    def for_date(cls, value: Optional[str] = None) -> "AcuRiteWindow":
        if value is None:
            return cls(date=datetime.now(timezone.utc).date().isoformat())
        try:
            parsed = datetime.strptime(value.strip(), "%Y-%m-%d").date()
        except ValueError as exc:
            raise ValueError(f"Invalid date {value!r}; expected YYYY-MM-DD.") from exc
        return cls(date=parsed.isoformat())


class AcuRiteAdapter:
    """Fetches channel-keyed readings for one device; never raises on upstream failure."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def fetch_live(
        self, entry: SensorCatalogEntry, window: AcuRiteWindow
    ) -> StageResult[AcuRitePayload]:
        context = sensor_context(entry)
        if not entry.device_id:
            return StageResult.failure(
                AcuRitePayload.empty(), stage="fetch", reason="sensor has no device id"
            )

        started = time.perf_counter()
        try:
            response = self._client.get(
                f"/mar-sensor-readings/{entry.device_id}/1h-summaries/{window.date}.json",
                timeout=self._timeout,
            )
            response.raise_for_status()
            payload = AcuRitePayload.parse(response.json())
        except httpx.HTTPStatusError as exc:
            return self._degraded(f"upstream returned {exc.response.status_code}", context)
        except httpx.HTTPError as exc:
            return self._degraded(f"{type(exc).__name__}: {exc}", context)
        except PayloadError as exc:
            return self._degraded(str(exc), context)
        except ValueError:
            return self._degraded("response body is not valid JSON", context)

        logger.info(
            "Fetched AcuRite summaries for %s with %d channels",
            window.date,
            len(payload.channels),
            extra={**context, "elapsed_ms": int((time.perf_counter() - started) * 1000)},
        )
        return StageResult.success(payload)

    @staticmethod
    def _degraded(reason: str, context: dict) -> StageResult[AcuRitePayload]:
        logger.warning("AcuRite fetch failed, serving empty payload", extra={**context, "reason": reason})
        return StageResult.failure(AcuRitePayload.empty(), stage="fetch", reason=reason)
