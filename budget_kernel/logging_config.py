"""
Structured JSON logging for budget runs (``budget_kernel.logging_config``).

Responsibility
--------------
Writes one JSON object per log line for everything under the
``budget_kernel`` logger namespace.  The identity of the current planning
run and of the budget request being distributed lives in context
variables and is merged into every record, so an engine event only needs
to carry the figures that are specific to it.

Context fields
--------------
``run_id``, ``actor_id``
    Bound by ``BudgetPlanningService.run`` for the whole run.
``brand``, ``company``, ``target_date``
    Bound per request by ``BudgetDistributionCalculator`` through
    ``LogContext.bind_request``.  Worker threads bind their own request.

Invariants enforced
-------------------
* Context values are stored as strings; dates as ISO 8601.
* ``bind`` restores the previous values on exit, so nested requests never
  leak their brand into the enclosing run.
* Extra fields never overwrite envelope or context fields.
* ``configure_logging`` installs at most one budget handler, however often
  it is called.

Failure modes
-------------
* ``TypeError`` when ``bind`` is given a field that is not a context field.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, TextIO
from uuid import UUID

__all__ = [
    "CONTEXT_FIELDS",
    "LogContext",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
    "reset_logging",
]

_LOGGER_PREFIX = "budget_kernel"

CONTEXT_FIELDS = (
    "run_id",
    "actor_id",
    "brand",
    "company",
    "target_date",
)

_CONTEXT: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"budget_log_{name}", default=None) for name in CONTEXT_FIELDS
}


def _context_value(value: Any) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


class LogContext:
    """Run- and request-scoped fields merged into every log record."""

    @staticmethod
    def get_all() -> dict[str, str]:
        """Bound fields, in ``CONTEXT_FIELDS`` order."""
        ctx = {}
        for name, var in _CONTEXT.items():
            value = var.get()
            if value is not None:
                ctx[name] = value
        return ctx

    @staticmethod
    def clear() -> None:
        for var in _CONTEXT.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """
        Bind context fields for the duration of a ``with`` block.

        ``None`` values leave the current binding untouched.

        Raises:
            TypeError: If a field name is not in ``CONTEXT_FIELDS``.
        """
        unknown = sorted(set(fields) - set(_CONTEXT))
        if unknown:
            raise TypeError(f"Unknown log context fields: {unknown}")

        tokens = [
            (_CONTEXT[name], _CONTEXT[name].set(_context_value(value)))
            for name, value in fields.items()
            if value is not None
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)

    @classmethod
    def bind_request(cls, request: Any):
        """Bind brand, company and target date of a budget request."""
        return cls.bind(
            brand=request.brand,
            company=request.company,
            target_date=request.target_date,
        )


# Attribute names every LogRecord carries; anything else came from ``extra``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (Decimal, UUID)):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """
    JSON line formatter.

    Kernel exceptions contribute their ``code``, their ``kind`` and their
    structured attributes as ``exc_*`` fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        kind = getattr(exc, "kind", None)
        if kind is not None:
            fields["exc_kind"] = kind
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                fields[f"exc_{name}"] = value
        return fields


def get_logger(name: str) -> logging.Logger:
    """Logger ``budget_kernel.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_lock = threading.Lock()


def _budget_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if getattr(h, "_budget_kernel", False)]


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> logging.Handler:
    """
    Install the JSON handler on the ``budget_kernel`` logger.

    Later calls return the handler already installed and change nothing.
    """
    root = logging.getLogger(_LOGGER_PREFIX)
    with _lock:
        installed = _budget_handlers(root)
        if installed:
            return installed[0]

        h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        h.setFormatter(StructuredFormatter())
        h._budget_kernel = True
        root.addHandler(h)
        root.setLevel(level)
        root.propagate = False
        return h


def reset_logging() -> None:
    """Remove the budget handler and restore defaults.  Used by tests."""
    root = logging.getLogger(_LOGGER_PREFIX)
    with _lock:
        for h in _budget_handlers(root):
            root.removeHandler(h)
        root.setLevel(logging.WARNING)
        root.propagate = True
