# src/logging/context.py — v2
"""Contextual logging support: attach run_id, object_key and stage to log records.

asyncio tasks copy the context on creation, so each per-object pipeline
task carries its own object_key/stage without leaking into siblings.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_object_key: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "object_key", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    object_key: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        object_key=_object_key.get(),
        stage=_stage.get(),
    )


def set_run_context(run_id: str) -> None:
    """Set run-level context (called once per orchestration run)."""
    _run_id.set(run_id)


def set_object_context(object_key: str, stage: str | None = None) -> None:
    """Set object-level context (called inside each per-object task)."""
    _object_key.set(object_key)
    _stage.set(stage)


def set_stage(stage: str) -> None:
    _stage.set(stage)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _object_key.set(None)
    _stage.set(None)
