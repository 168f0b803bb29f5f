"""Apply a resolved ``IssueChange`` to the tracker.

Order matters and every step may abort the rest:

1. make the resolved state label the only state label on the issue,
2. replace the previous notification comment unless it is still current,
3. clear the milestone when the issue must leave it.

A failed write raises ``MutationError``; earlier writes stay in place and
the next run reconciles from scratch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .labels import MILESTONE_STATE_LABELS
from .models import Comment, IssueChange, TrackedItem
from .notifications import notification_is_current
from .tracker import IssueTracker


@dataclass
class ApplyOutcome:
    labels_added: list[str] = field(default_factory=list)
    labels_removed: list[str] = field(default_factory=list)
    comment_deleted: int | None = None
    comment_posted: bool = False
    milestone_cleared: bool = False

    @property
    def changed(self) -> bool:
        return bool(
            self.labels_added
            or self.labels_removed
            or self.comment_deleted is not None
            or self.comment_posted
            or self.milestone_cleared
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "labels_added": list(self.labels_added),
            "labels_removed": list(self.labels_removed),
            "comment_deleted": self.comment_deleted,
            "comment_posted": self.comment_posted,
            "milestone_cleared": self.milestone_cleared,
        }


def sync_state_label(
    tracker: IssueTracker, item: TrackedItem, label: str, outcome: ApplyOutcome
) -> None:
    """Ensure ``label`` is the only milestone state label on ``item``."""
    if label and not item.has_label(label):
        tracker.add_label(item.number, label)
        outcome.labels_added.append(label)
    for state_label in MILESTONE_STATE_LABELS:
        if state_label != label and item.has_label(state_label):
            tracker.remove_label(item.number, state_label)
            outcome.labels_removed.append(state_label)


def apply_change(
    tracker: IssueTracker,
    item: TrackedItem,
    change: IssueChange,
    prior: Comment | None,
    *,
    now: datetime,
) -> ApplyOutcome:
    outcome = ApplyOutcome()
    sync_state_label(tracker, item, change.label, outcome)

    if not notification_is_current(change.notification, prior, change.comment_interval, now=now):
        if prior is not None:
            tracker.delete_comment(item.number, prior.id)
            outcome.comment_deleted = prior.id
        tracker.post_comment(item.number, change.notification.format())
        outcome.comment_posted = True

    if change.remove_from_milestone:
        tracker.clear_milestone(item.number)
        outcome.milestone_cleared = True
    return outcome


__all__ = ["ApplyOutcome", "apply_change", "sync_state_label"]
