from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from .labels import (
    LABELS_INCOMPLETE_LABEL,
    NEEDS_APPROVAL_LABEL,
    NEEDS_ATTENTION_LABEL,
    REMOVED_LABEL,
)

if TYPE_CHECKING:  # pragma: no cover
    from .notifications import Notification


class MilestoneMode(str, enum.Enum):
    DEV = "dev"
    SLUSH = "slush"
    FREEZE = "freeze"


class LifecycleState(enum.Enum):
    CURRENT = "current"
    NEEDS_LABELING = "needs-labeling"
    NEEDS_APPROVAL = "needs-approval"
    NEEDS_ATTENTION = "needs-attention"
    NEEDS_REMOVAL = "needs-removal"


@dataclass(frozen=True)
class StateConfig:
    """Label and notification settings for one lifecycle state."""

    title: str
    label: str = ""
    # Repeat the notification every warning interval
    warn_on_interval: bool = False
    # Mention the owning SIGs in the notification
    notify_sigs: bool = False


STATE_CONFIGS: dict[LifecycleState, StateConfig] = {
    LifecycleState.CURRENT: StateConfig(title="Milestone Issue **Current**"),
    LifecycleState.NEEDS_LABELING: StateConfig(
        title="Milestone Labels **Incomplete**",
        label=LABELS_INCOMPLETE_LABEL,
        warn_on_interval=True,
    ),
    LifecycleState.NEEDS_APPROVAL: StateConfig(
        title="Milestone Issue **Needs Approval**",
        label=NEEDS_APPROVAL_LABEL,
        warn_on_interval=True,
        notify_sigs=True,
    ),
    LifecycleState.NEEDS_ATTENTION: StateConfig(
        title="Milestone Issue **Needs Attention**",
        label=NEEDS_ATTENTION_LABEL,
        warn_on_interval=True,
        notify_sigs=True,
    ),
    LifecycleState.NEEDS_REMOVAL: StateConfig(
        title="Milestone **Removed**",
        label=REMOVED_LABEL,
        notify_sigs=True,
    ),
}


def milestone_key(title: str) -> str:
    """Milestone titles match case-insensitively, ignoring surrounding space."""
    return title.strip().casefold()


@dataclass
class TrackedItem:
    """Snapshot of an issue as returned by the tracker."""

    number: int
    title: str = ""
    state: str = "open"
    labels: list[str] = field(default_factory=list)
    milestone: str | None = None
    author: str | None = None
    assignees: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    is_pull_request: bool = False

    def has_label(self, name: str) -> bool:
        return name in self.labels

    def in_milestone(self, title: str) -> bool:
        return self.milestone is not None and milestone_key(self.milestone) == milestone_key(title)

    @property
    def is_open(self) -> bool:
        return self.state.lower() == "open"


@dataclass(frozen=True)
class LabelEvent:
    event: str  # labeled | unlabeled | milestoned | ...
    label: str | None
    actor: str | None
    created_at: datetime | None


@dataclass(frozen=True)
class Comment:
    id: int
    author: str | None
    body: str
    created_at: datetime | None


@dataclass
class IssueChange:
    """Changes required to make an issue reflect its milestone state."""

    state: LifecycleState
    notification: Notification
    label: str
    remove_from_milestone: bool = False
    comment_interval: timedelta | None = None


__all__ = [
    "Comment",
    "IssueChange",
    "LabelEvent",
    "LifecycleState",
    "MilestoneMode",
    "STATE_CONFIGS",
    "StateConfig",
    "TrackedItem",
    "milestone_key",
]
