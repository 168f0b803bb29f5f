"""Centralized retry / backoff helpers for GitHub API calls.

``run_with_retries`` wraps a thunk with exponential backoff and jitter.
Only transient GitHub failures (rate limit / abuse / secondary rate limit,
HTTP 429) are retried; every other failure propagates immediately.

Environment overrides:
  MILESTONE_MAINTAINER_RETRY_ATTEMPTS (default 3)
  MILESTONE_MAINTAINER_RETRY_BASE (seconds base, default 0.5)
  MILESTONE_MAINTAINER_RETRY_MAX_SLEEP (cap in seconds, optional)
"""

from __future__ import annotations

import os
import random
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from .logging import get_logger

T = TypeVar("T")

TRANSIENT_TOKENS = (
    "rate limit",
    "abuse detection",
    "secondary rate",
)
TRANSIENT_STATUSES = frozenset({429})

_RE_RETRY_AFTER = re.compile(r"retry[-\s]after:?\s*(\d+)", re.IGNORECASE)
_RE_SECONDS_HINT = re.compile(r"wait\s*(\d+)\s*seconds", re.IGNORECASE)
_JITTER = random.SystemRandom()


def _extract_explicit_backoff(text: str) -> float | None:
    """Extract an explicit backoff (seconds) from error output.

    Supports ``Retry-After: 12``, ``retry after 12`` and ``wait 30 seconds``.
    Returns None if no positive value is found.
    """
    if not text:
        return None
    for pattern in (_RE_RETRY_AFTER, _RE_SECONDS_HINT):
        m = pattern.search(text)
        if m:
            val = float(m.group(1))
            return val if val > 0 else None
    return None


@dataclass
class RetryConfig:
    attempts: int = field(
        default_factory=lambda: int(os.environ.get("MILESTONE_MAINTAINER_RETRY_ATTEMPTS", "3"))
    )
    base_sleep: float = field(
        default_factory=lambda: float(os.environ.get("MILESTONE_MAINTAINER_RETRY_BASE", "0.5"))
    )


def is_transient(output: str) -> bool:
    out_lower = output.lower()
    return any(tok in out_lower for tok in TRANSIENT_TOKENS)


def _error_output(exc: BaseException) -> str:
    for attr in ("response_text", "output"):
        value = getattr(exc, attr, None)
        if isinstance(value, str) and value:
            return f"{exc} {value}"
    return str(exc)


def _is_transient_error(exc: BaseException) -> bool:
    if getattr(exc, "status", None) in TRANSIENT_STATUSES:
        return True
    return is_transient(_error_output(exc))


def _compute_sleep(attempt: int, cfg: RetryConfig, out: str) -> float:
    explicit = _extract_explicit_backoff(out)
    backoff = cfg.base_sleep * (2 ** (attempt - 1)) + _JITTER.uniform(0, 0.25)
    sleep_for: float = explicit if explicit is not None else backoff
    max_cap_env = os.environ.get("MILESTONE_MAINTAINER_RETRY_MAX_SLEEP")
    if max_cap_env:
        try:
            cap = float(max_cap_env)
        except ValueError:  # pragma: no cover
            return sleep_for
        if cap >= 0:
            sleep_for = min(sleep_for, cap)
    return sleep_for


def run_with_retries(
    fn: Callable[[], T],
    *,
    cfg: RetryConfig | None = None,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> T:
    cfg = cfg or RetryConfig()
    attempts = max(1, cfg.attempts)
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except retry_on as exc:
            if attempt >= attempts or not _is_transient_error(exc):
                raise
            sleep_for = _compute_sleep(attempt, cfg, _error_output(exc))
            get_logger().warning(
                f"[retry] transient error, attempt {attempt}/{attempts}, "
                f"sleeping {sleep_for:.2f}s",
                attempt=attempt,
            )
            time.sleep(sleep_for)
    raise RuntimeError("retry logic exited unexpectedly")  # pragma: no cover


__all__ = ["RetryConfig", "is_transient", "run_with_retries"]
