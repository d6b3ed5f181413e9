"""Structured JSON logging for the batch engine."""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"log_{name}", default=None)
    for name in ("job_name", "job_execution_id", "run_id", "step_name")
}


def _context_var(name: str) -> ContextVar[str | None]:
    try:
        return _CONTEXT_FIELDS[name]
    except KeyError:
        raise TypeError(
            f"Unknown log context field {name!r}; expected one of {sorted(_CONTEXT_FIELDS)}"
        ) from None


class LogContext:
    """Run-scoped log fields: job, job execution, run id and step.

    Fields live in ContextVars, so nested runs in other threads or tasks
    never see each other's values.
    """

    FIELD_NAMES: tuple[str, ...] = tuple(_CONTEXT_FIELDS)

    @staticmethod
    def set(**fields: str | None) -> None:
        """Set context fields. None values leave a field unchanged."""
        for name, value in fields.items():
            var = _context_var(name)
            if value is not None:
                var.set(value)

    @staticmethod
    def get_all() -> dict[str, str]:
        """Return the fields that currently have a value."""
        return {
            name: value
            for name, var in _CONTEXT_FIELDS.items()
            if (value := var.get()) is not None
        }

    @staticmethod
    def clear() -> None:
        for var in _CONTEXT_FIELDS.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[None]:
        """Set fields for the duration of a ``with`` block, then restore them."""
        tokens = [
            (_context_var(name), _context_var(name).set(value))
            for name, value in fields.items()
            if value is not None
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_RESERVED_RECORD_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


class _JSONEncoder(json.JSONEncoder):
    """Encode UUIDs, datetimes and enums; anything else falls back to str()."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    """Flatten an exception into ``exc_*`` payload keys.

    Public attributes of the exception (``step_name``, ``batch_size``, ...)
    become ``exc_<name>``.  A wrapped collaborator error is reported as
    ``exc_chained_type`` / ``exc_chained_message``.
    """
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_"):
            fields[f"exc_{name}"] = value
    cause = exc.__cause__
    if cause is not None:
        fields["exc_chained_type"] = type(cause).__name__
        fields["exc_chained_message"] = str(cause)
    return fields


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line.

    Key order: envelope (ts, level, logger, message), LogContext fields,
    ``extra=`` data, then exception fields and traceback.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }

        for key, value in vars(record).items():
            if key not in _RESERVED_RECORD_KEYS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_JSONEncoder)


# ---------------------------------------------------------------------------
# Logger factory
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "batch_kernel"


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the batch_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

_configured = False
_lock = threading.Lock()


def _engine_logger() -> logging.Logger:
    return logging.getLogger(_LOGGER_PREFIX)


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``batch_kernel`` logger.

    Only the first call has an effect until ``reset_logging()``. Level names
    are case-insensitive (``"debug"`` and ``"DEBUG"`` are the same). A
    supplied handler is given the StructuredFormatter.
    """
    global _configured
    with _lock:
        if _configured:
            return
        if handler is None:
            handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())

        engine_logger = _engine_logger()
        engine_logger.setLevel(level.upper() if isinstance(level, str) else level)
        engine_logger.addHandler(handler)
        engine_logger.propagate = False
        _configured = True


def reset_logging() -> None:
    """Undo ``configure_logging()``. Used by the test suite."""
    global _configured
    with _lock:
        engine_logger = _engine_logger()
        engine_logger.handlers.clear()
        engine_logger.setLevel(logging.WARNING)
        engine_logger.propagate = True
        _configured = False
