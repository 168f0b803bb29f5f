"""Structured logging for milestone-maintainer.

Every record can carry structured fields (issue number, resolved state,
mutation detail, milestone) passed as keyword arguments. With JSON logging
enabled they become top-level keys of one JSON object per line, so a run
can be filtered per issue or per mutation.
"""

from __future__ import annotations

import copy
import json
import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, TextIO

# Attributes every LogRecord has; extra fields must not shadow them
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
}


def _safe_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {(f"{k}_" if k in _RECORD_ATTRS else k): v for k, v in fields.items()}


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key.startswith("_") or key in entry:
                continue
            entry[key] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class StructuredLogger:
    def __init__(
        self,
        name: str = "milestone_maintainer",
        json_logging: bool = False,
        level: str = "INFO",
        stream: TextIO | None = None,
    ) -> None:
        self._logger = logging.getLogger(name)
        self.set_level(level)
        for handler in list(self._logger.handlers):
            self._logger.removeHandler(handler)
        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(
            JSONFormatter()
            if json_logging
            else logging.Formatter("%(asctime)s %(levelname)s %(message)s")
        )
        self._logger.addHandler(handler)
        self._logger.propagate = False
        self._context: dict[str, Any] = {}
        # Consecutive identical JSON records are dropped
        self._dedupe = json_logging
        self._last_signature: tuple[int, str, tuple[tuple[str, str], ...]] | None = None

    def bind(self, **context: Any) -> StructuredLogger:
        """Logger sharing this one's handlers that adds ``context`` to every record."""
        child = copy.copy(self)
        child._context = {**self._context, **context}
        return child

    def set_level(self, level: str) -> None:
        self._logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    def _emit(self, level: int, message: str, fields: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        extra = _safe_fields({**self._context, **fields})
        if self._dedupe:
            signature = (level, message, tuple(sorted((k, repr(v)) for k, v in extra.items())))
            if signature == self._last_signature:
                return
            self._last_signature = signature
        self._logger.log(level, message, extra=extra)

    # ---- milestone events ---------------------------------------------
    def log_resolution(self, issue_number: int, state: str, **kw: Any) -> None:
        self._emit(
            logging.DEBUG,
            f"issue #{issue_number} resolved to {state}",
            {"operation": "resolve", "issue_number": issue_number, "state": state, **kw},
        )

    def log_skip(self, issue_number: int, reason: str, **kw: Any) -> None:
        self._emit(
            logging.INFO,
            f"issue #{issue_number} skipped: {reason}",
            {"operation": "skip", "issue_number": issue_number, "reason": reason, **kw},
        )

    def log_issue_action(
        self,
        action: str,
        issue_number: int,
        dry_run: bool = False,
        **kw: Any,
    ) -> None:
        detail = "".join(f" {k}={v}" for k, v in sorted(kw.items()))
        self._emit(
            logging.INFO,
            f"issue {action} #{issue_number}{detail}" + (" [DRY]" if dry_run else ""),
            {
                "operation": f"issue_{action}",
                "issue_number": issue_number,
                "dry_run": dry_run,
                **kw,
            },
        )

    # ---- generic ------------------------------------------------------
    def log_operation(self, operation: str, **kw: Any) -> None:
        self._emit(logging.INFO, f"Operation: {operation}", {"operation": operation, **kw})

    def log_performance(self, operation: str, duration_ms: float, **kw: Any) -> None:
        self._emit(
            logging.INFO,
            f"Performance: {operation} completed in {duration_ms:.2f}ms",
            {"operation": operation, "duration_ms": round(duration_ms, 2), **kw},
        )

    def log_error(self, message: str, error: str | None = None, **kw: Any) -> None:
        if error:
            kw["error"] = error
        self._emit(logging.ERROR, message, kw)

    def debug(self, message: str, **kw: Any) -> None:
        self._emit(logging.DEBUG, message, kw)

    def info(self, message: str, **kw: Any) -> None:
        self._emit(logging.INFO, message, kw)

    def warning(self, message: str, **kw: Any) -> None:
        self._emit(logging.WARNING, message, kw)

    def error(self, message: str, **kw: Any) -> None:  # noqa: D401
        self._emit(logging.ERROR, message, kw)

    @contextmanager
    def timed_operation(self, operation: str, **kw: Any) -> Iterator[None]:
        start = time.perf_counter()
        self.log_operation(f"{operation}_start", **kw)
        try:
            yield
        except Exception as exc:
            self.log_error(f"operation {operation} failed", error=str(exc), **kw)
            raise
        self.log_performance(operation, (time.perf_counter() - start) * 1000, **kw)


_GLOBAL: StructuredLogger | None = None


def get_logger() -> StructuredLogger:
    global _GLOBAL  # noqa: PLW0603
    if _GLOBAL is None:
        _GLOBAL = StructuredLogger()
    return _GLOBAL


def configure_logging(
    json_logging: bool = False, level: str = "INFO", stream: TextIO | None = None
) -> StructuredLogger:
    global _GLOBAL  # noqa: PLW0603
    _GLOBAL = StructuredLogger(json_logging=json_logging, level=level, stream=stream)
    return _GLOBAL


__all__ = ["JSONFormatter", "StructuredLogger", "configure_logging", "get_logger"]
