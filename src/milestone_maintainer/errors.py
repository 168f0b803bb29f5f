"""Error taxonomy & redaction helpers.

Two exception types scope failures to a single issue's cycle:

- ``IndeterminateHistoryError``: the tracker could not return the history
  (label events, comments) needed to decide. Nothing is mutated and the
  issue is retried implicitly on the next run.
- ``MutationError``: a label, comment or milestone write failed. Remaining
  steps for the issue are skipped; earlier writes are not rolled back.

``classify_error`` and ``redact`` prepare arbitrary exceptions for logging.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"ghp_[A-Za-z0-9]{20,40}"),  # GitHub classic tokens
    re.compile(r"github_pat_\w{20,}"),  # GitHub fine-grained tokens
    re.compile(r"(?i)(authorization:\s*bearer\s+)\S+"),
]

_REDACTION_PLACEHOLDER = "<redacted>"


class MaintainerError(RuntimeError):
    """Base class for per-issue failures."""

    def __init__(self, message: str, *, issue_number: int | None = None) -> None:
        super().__init__(message)
        self.issue_number = issue_number


class IndeterminateHistoryError(MaintainerError):
    """Issue history needed for a decision could not be established."""


class MutationError(MaintainerError):
    """A write against the issue tracker failed."""


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    """Replace sensitive substrings (tokens, auth headers) with a placeholder."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        if pat.groups:
            redacted = pat.sub(lambda m: m.group(1) + _REDACTION_PLACEHOLDER, redacted)
        else:
            redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception for structured logs.

    - rate limit / abuse wording -> ``github.rate_limit`` / ``github.abuse`` (transient)
    - network wording -> ``network`` (transient)
    - ``IndeterminateHistoryError`` -> ``history``
    - ``MutationError`` -> ``mutation``
    - fallback -> ``generic``
    """
    msg = str(exc) if exc else ""
    low = msg.lower()
    name = exc.__class__.__name__

    if "rate limit" in low or "secondary rate" in low:
        return ErrorInfo("github.rate_limit", redact(msg), name, transient=True)
    if "abuse" in low:
        return ErrorInfo("github.abuse", redact(msg), name, transient=True)
    if any(k in low for k in ("timeout", "timed out", "connection reset", "temporarily unavailable")):
        return ErrorInfo("network", redact(msg), name, transient=True)
    if isinstance(exc, IndeterminateHistoryError):
        return ErrorInfo("history", redact(msg), name, transient=True)
    if isinstance(exc, MutationError):
        return ErrorInfo("mutation", redact(msg), name)
    return ErrorInfo("generic", redact(msg), name)


__all__ = [
    "ErrorInfo",
    "IndeterminateHistoryError",
    "MaintainerError",
    "MutationError",
    "classify_error",
    "redact",
]
