"""
Structured JSON logging for the payroll engine.

Each record is written as one JSON line:

    {"ts": ..., "level": "INFO", "logger": "payroll_kernel.engines.payroll",
     "message": "payroll_calculation_completed",
     "payroll_run_id": "RUN-2024-03", "employee_id": "EMP-001",
     "country_code": "CI", "net_salary": "275569", ...}

The payslip context (payroll run, employee, country) is bound once per
``compute`` call through ``LogContext.bind`` and merged into every record
emitted while the call runs, so engine modules only log their own figures.

Amounts are logged as Decimal strings, never floats, so a logged figure
matches the payslip to the last digit.
"""

__all__ = [
    "CONTEXT_FIELDS",
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
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Payslip context
# ---------------------------------------------------------------------------

CONTEXT_FIELDS: tuple[str, ...] = ("payroll_run_id", "employee_id", "country_code")

_context_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"payroll_log_{name}", default=None) for name in CONTEXT_FIELDS
}


class LogContext:
    """Payslip-scoped fields merged into every log record.

    Backed by ContextVars, so concurrent ``compute`` calls in threads or
    tasks never see each other's employee.
    """

    @staticmethod
    def current() -> dict[str, str]:
        """Bound fields, without the unset ones."""
        return {
            name: value
            for name, var in _context_vars.items()
            if (value := var.get()) is not None
        }

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[None]:
        """Bind fields for the duration of the block; ``None`` leaves a field as is.

        Raises:
            ValueError: If a field is not one of ``CONTEXT_FIELDS``.
        """
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown log context field(s): {', '.join(sorted(unknown))}")
        tokens = [
            (_context_vars[name], _context_vars[name].set(value))
            for name, value in fields.items()
            if value is not None
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)

    @staticmethod
    def clear() -> None:
        for var in _context_vars.values():
            var.set(None)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    """Serialize the value types payroll modules put in ``extra``."""
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (set, frozenset)):
        return sorted(_json_default(v) if isinstance(v, Enum) else str(v) for v in obj)
    if isinstance(obj, Mapping):
        return {str(k.value if isinstance(k, Enum) else k): v for k, v in obj.items()}
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.current())

        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        # PayrollError subclasses keep their context as attributes
        # (country_code, minimum, field, ...); those become exc_* keys.
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        for key, val in vars(exc).items():
            if not key.startswith("_"):
                fields[f"exc_{key}"] = val
        return fields


# ---------------------------------------------------------------------------
# Logger factory and initialization
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "payroll_kernel"

_configured = False
_lock = threading.Lock()


def get_logger(name: str) -> logging.Logger:
    """Logger under the payroll_kernel namespace, e.g. ``engines.gross``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the payroll_kernel logger (idempotent).

    ``level`` accepts a level number or name (``"DEBUG"``).
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.setLevel(level.upper() if isinstance(level, str) else level)
    root_logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(StructuredFormatter())
    root_logger.addHandler(h)


def reset_logging() -> None:
    """Reset logging configuration. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
    logger.propagate = True
