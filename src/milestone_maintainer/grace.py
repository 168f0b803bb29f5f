"""Grace period arithmetic.

A grace period starts when the maintainer last applied the relevant state
label to the issue (or "now" when the label is not on the issue yet) and
ends ``grace_period`` later. Blocker issues have no deadline at all.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol

from .errors import IndeterminateHistoryError
from .models import TrackedItem


class LabelHistory(Protocol):
    def label_applied_at(self, label: str) -> datetime | None:
        """When the maintainer last applied ``label``; ``None`` if never."""
        ...  # pragma: no cover - structural only


def grace_period_start(
    item: TrackedItem,
    history: LabelHistory,
    label: str,
    default_start: datetime,
) -> datetime | None:
    if not item.has_label(label):
        return default_start
    return history.label_applied_at(label)


def grace_period_remaining(
    *,
    exempt: bool,
    now: datetime,
    grace_period: timedelta,
    start: datetime | None,
) -> timedelta | None:
    """Signed time left before eviction; ``None`` means no deadline.

    Zero or negative means the deadline has passed. Raises
    ``IndeterminateHistoryError`` when the start could not be established.
    """
    if exempt:
        return None
    if start is None:
        raise IndeterminateHistoryError("grace period start could not be determined")
    return grace_period - (now - start)


def remaining_for_label(
    item: TrackedItem,
    history: LabelHistory,
    label: str,
    grace_period: timedelta,
    *,
    now: datetime,
    exempt: bool = False,
) -> timedelta | None:
    if exempt:
        return None
    start = grace_period_start(item, history, label, now)
    return grace_period_remaining(exempt=False, now=now, grace_period=grace_period, start=start)


__all__ = [
    "LabelHistory",
    "grace_period_remaining",
    "grace_period_start",
    "remaining_for_label",
]
