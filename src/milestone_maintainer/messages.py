"""Message model for milestone notifications.

Each lifecycle state has its own message type carrying only the facts that
state reports. ``render.render_message`` turns a message into comment text.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Union

from .models import LifecycleState


@dataclass(frozen=True)
class LabelSummary:
    kind: str
    priority: str
    owners: tuple[str, ...]


@dataclass(frozen=True)
class ProgressNotes:
    """Slush/freeze obligations evaluated for an approved issue."""

    missing_in_progress: bool = False
    # Set when the issue has not been updated within the update interval
    last_updated: datetime | None = None
    # Set for blockers: they must be updated every interval
    update_interval: timedelta | None = None
    # Non-blockers are warned they will leave the milestone at freeze
    non_blocker_warning: bool = False

    @property
    def needs_attention(self) -> bool:
        return self.missing_in_progress or self.last_updated is not None


@dataclass(frozen=True)
class CurrentMessage:
    summary: LabelSummary
    notes: ProgressNotes = field(default_factory=ProgressNotes)
    state = LifecycleState.CURRENT


@dataclass(frozen=True)
class NeedsLabelingMessage:
    label_errors: tuple[str, ...]
    # ``None`` for blockers, which are never removed
    remaining: timedelta | None = None
    state = LifecycleState.NEEDS_LABELING


@dataclass(frozen=True)
class NeedsApprovalMessage:
    summary: LabelSummary
    remaining: timedelta | None = None
    state = LifecycleState.NEEDS_APPROVAL


@dataclass(frozen=True)
class NeedsAttentionMessage:
    summary: LabelSummary
    notes: ProgressNotes
    state = LifecycleState.NEEDS_ATTENTION


class RemovalReason(enum.Enum):
    UNAPPROVED = "unapproved"
    NON_BLOCKER = "non-blocker"
    INCOMPLETE_LABELS = "incomplete-labels"


@dataclass(frozen=True)
class RemovalMessage:
    reason: RemovalReason
    label_errors: tuple[str, ...] = ()
    state = LifecycleState.NEEDS_REMOVAL


MilestoneMessage = Union[
    CurrentMessage,
    NeedsLabelingMessage,
    NeedsApprovalMessage,
    NeedsAttentionMessage,
    RemovalMessage,
]


__all__ = [
    "CurrentMessage",
    "LabelSummary",
    "MilestoneMessage",
    "NeedsApprovalMessage",
    "NeedsAttentionMessage",
    "NeedsLabelingMessage",
    "ProgressNotes",
    "RemovalMessage",
    "RemovalReason",
]
