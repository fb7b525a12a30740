"""Per-stage outcome type used by the ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class RecoverableError:
    """A failure a pipeline stage absorbed instead of raising."""

    stage: str
    reason: str


@dataclass(frozen=True)
class StageResult(Generic[T]):
    """Value produced by a stage, plus the error it recovered from, if any.

    A failed result still carries a usable value (typically an empty sentinel)
    so the caller can decide whether to degrade or propagate.
    """

    value: T
    error: Optional[RecoverableError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "StageResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, value: T, stage: str, reason: str) -> "StageResult[T]":
        return cls(value=value, error=RecoverableError(stage=stage, reason=reason))
