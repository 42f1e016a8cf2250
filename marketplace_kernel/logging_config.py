"""
Structured JSON logging for the marketplace kernel.

Every logger handed out by ``get_logger`` lives under the
``marketplace_kernel`` namespace and emits one JSON object per line.  The
message is an event name (``proposal_accepted``, ``transition_conflict``);
detail travels in ``extra`` and in the request-scoped ``LogContext``.
"""

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
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TextIO

_LOGGER_PREFIX = "marketplace_kernel"

# Replaced wholesale on every change, never mutated in place.
_context: ContextVar[dict[str, str]] = ContextVar("marketplace_log_context")


class LogContext:
    """Request-scoped fields attached to every record on the current thread or task."""

    FIELDS = frozenset({"correlation_id", "actor_id", "operation", "job_id", "contract_id"})

    @classmethod
    def _merged(cls, fields: dict[str, Any]) -> dict[str, str]:
        merged = dict(_context.get({}))
        merged.update(
            (name, str(value))
            for name, value in fields.items()
            if name in cls.FIELDS and value is not None
        )
        return merged

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set known fields; ``None`` values and unknown names are ignored."""
        _context.set(cls._merged(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get({}))

    @classmethod
    def clear(cls) -> None:
        _context.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of the block, then restore the previous ones."""
        token = _context.set(cls._merged(fields))
        try:
            yield cls
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    # UUID, Decimal and anything else unknown
    return str(value)


class StructuredFormatter(logging.Formatter):
    """One JSON line per record: envelope, context, extras, then exception detail."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRIBUTES:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            # MarketplaceError carries a code plus typed public attributes.
            if hasattr(exc, "code"):
                payload["exc_code"] = exc.code
            payload.update(
                (f"exc_{name}", value)
                for name, value in vars(exc).items()
                if not name.startswith("_") and name != "code"
            )
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger named ``marketplace_kernel.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``marketplace_kernel`` logger.

    A no-op while a handler is already attached, so applications and test
    fixtures can both call it.
    """
    root = logging.getLogger(_LOGGER_PREFIX)
    if root.handlers:
        return
    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False


def reset_logging() -> None:
    """Detach every handler and restore propagation. Tests only."""
    root = logging.getLogger(_LOGGER_PREFIX)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.NOTSET)
    root.propagate = True
