from __future__ import annotations

import logging
import time
from logging.config import dictConfig
from typing import Any, Dict, Iterable, Sequence

from settings import get_settings

_DEFAULT_EXTRA_KEYS = (
    "sensor_index",
    "provider",
    "device_id",
    "stage",
    "reason",
    "submitted",
    "inserted",
    "timestamp",
    "elapsed_ms",
)

_QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")

_configured = False


def sensor_context(entry: Any, **fields: Any) -> Dict[str, Any]:
    """``extra`` mapping for a log call about one catalog sensor.

    ``entry`` is anything with ``sensor_index``, ``provider`` and ``device_id``
    attributes. Keys whose value is ``None`` are left out.
    """
    context: Dict[str, Any] = {
        "sensor_index": entry.sensor_index,
        "provider": getattr(entry.provider, "value", entry.provider),
        "device_id": getattr(entry, "device_id", None),
    }
    context.update(fields)
    return {key: value for key, value in context.items() if value is not None}


def _render_value(value: Any) -> str:
    text = str(value)
    if not text or any(char.isspace() for char in text):
        return '"' + text.replace('"', '\\"') + '"'
    return text


class ContextualFormatter(logging.Formatter):
    """Append known ``extra`` attributes to the message as ``key=value`` pairs.

    Times are rendered in UTC to match the trailing ``Z`` in the format string.
    """

    converter = time.gmtime

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context_parts = [
            f"{key}={_render_value(getattr(record, key))}"
            for key in self._extra_keys
            if getattr(record, key, None) is not None
        ]
        if context_parts:
            return f"{message} | {' '.join(context_parts)}"
        return message


def configure_logging(level: str | int | None = None) -> None:
    """Install the contextual stream handler on the root logger once per process."""
    global _configured
    if _configured:
        return

    log_level = level if level is not None else get_settings().log_level

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": "logging_config.ContextualFormatter",
                    "fmt": "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                    "extra_keys": list(_DEFAULT_EXTRA_KEYS),
                }
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "level": log_level,
                    "formatter": "contextual",
                }
            },
            "loggers": {name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
            "root": {"handlers": ["default"], "level": log_level},
        }
    )

    _configured = True
