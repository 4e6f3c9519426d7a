"""
Structured JSON logging for the POS kernel.

Every record is written as one JSON object.  Fields bound through LogContext
(the sale's correlation id, owner, invoice number and current phase) are
merged into each record emitted while they are bound, so all lines of one
sale can be pulled from a shared log by ``correlation_id``.

Sale objects are logged as themselves:

    logger.warning("stock_reservation_skipped", extra={"notice": notice})

Anything with a ``to_dict()`` (StockNotice, FieldError, Totals, records) is
serialised through it, enums by value, and money as a fixed-point string.
"""

__all__ = [
    "SALE_CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
    "resolve_level",
]

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, is_dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping
from uuid import UUID

SALE_CONTEXT_FIELDS = ("correlation_id", "owner_id", "invoice_number", "sale_phase")

_EMPTY: Mapping[str, str] = MappingProxyType({})

_sale_context: ContextVar[Mapping[str, str]] = ContextVar(
    "pos_sale_context", default=_EMPTY
)


def _as_text(value: Any) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def _merged(fields: dict[str, Any]) -> Mapping[str, str]:
    unknown = sorted(set(fields) - set(SALE_CONTEXT_FIELDS))
    if unknown:
        raise ValueError(f"Unknown log context fields: {unknown}")
    merged = dict(_sale_context.get())
    merged.update({k: _as_text(v) for k, v in fields.items() if v is not None})
    return MappingProxyType(merged)


class LogContext:
    """Sale-scoped fields merged into every log record (contextvar-backed)."""

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set fields for the rest of the current context. None is ignored."""
        _sale_context.set(_merged(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        current = _sale_context.get()
        return {name: current[name] for name in SALE_CONTEXT_FIELDS if name in current}

    @classmethod
    def clear(cls) -> None:
        _sale_context.set(_EMPTY)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[None]:
        """Bind fields for the duration of a ``with`` block, then restore."""
        token = _sale_context.set(_merged(fields))
        try:
            yield
        finally:
            _sale_context.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


def _to_json(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Decimal):
        # money stays fixed-point
        return str(obj)
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # structured attributes of kernel exceptions (requested, field_errors, ...)
    for key, value in vars(exc).items():
        if not key.startswith("_") and key != "code":
            fields[f"exc_{key}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())

        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


# ---------------------------------------------------------------------------
# Logger factory and initialization
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "pos_kernel"


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the pos_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def resolve_level(level: int | str) -> int:
    """Accept a numeric level or a name such as "debug" from a config file."""
    if isinstance(level, int):
        return level
    try:
        return logging.getLevelNamesMapping()[level.upper()]
    except KeyError:
        raise ValueError(f"Unknown log level: {level!r}") from None


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Configure the pos_kernel logger hierarchy. Only the first call acts."""
    global _configured
    numeric_level = resolve_level(level)
    with _lock:
        if _configured:
            return
        _configured = True

    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.setLevel(numeric_level)
    root_logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(StructuredFormatter())
    root_logger.addHandler(h)


def reset_logging() -> None:
    """Drop handlers and allow configure_logging() to run again. Tests only."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
