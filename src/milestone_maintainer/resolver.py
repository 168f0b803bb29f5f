"""Lifecycle state resolution for a single milestone issue.

The decision is recomputed from scratch on every run:

1. labels are validated first; incomplete labels mean ``NEEDS_LABELING``
   (or removal once the label grace period has expired),
2. then approval; unapproved issues are ``NEEDS_APPROVAL`` (or removed once
   the approval grace period has expired),
3. then the mode specific checks: nothing in dev, non-blockers are removed
   in freeze, and slush/freeze require progress and blocker updates.

Blockers (``priority/critical-urgent``) never hit a labeling or approval
deadline but must be updated every update interval during slush/freeze.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from .config import ProcessConfig
from .grace import remaining_for_label
from .labels import (
    APPROVED_LABEL,
    BLOCKER_LABEL,
    IN_PROGRESS_LABEL,
    LABELS_INCOMPLETE_LABEL,
    NEEDS_APPROVAL_LABEL,
    classify_labels,
)
from .messages import (
    CurrentMessage,
    LabelSummary,
    MilestoneMessage,
    NeedsApprovalMessage,
    NeedsAttentionMessage,
    NeedsLabelingMessage,
    ProgressNotes,
    RemovalMessage,
    RemovalReason,
)
from .models import LifecycleState, MilestoneMode, TrackedItem


class IssueHistory(Protocol):
    def label_applied_at(self, label: str) -> datetime | None: ...  # pragma: no cover

    def last_modified(self) -> datetime: ...  # pragma: no cover


@dataclass(frozen=True)
class Resolution:
    message: MilestoneMessage
    # Owner labels to mention; empty when labels are incomplete
    owners: tuple[str, ...] = ()

    @property
    def state(self) -> LifecycleState:
        return self.message.state


def resolve(
    item: TrackedItem,
    process: ProcessConfig,
    history: IssueHistory,
    *,
    now: datetime,
) -> Resolution:
    """Resolve the lifecycle state of ``item``.

    Raises ``IndeterminateHistoryError`` when a decision depends on history
    that could not be fetched; callers must then leave the issue untouched.
    """
    is_blocker = item.has_label(BLOCKER_LABEL)
    classification = classify_labels(item.labels)

    if not classification.valid:
        errors = tuple(classification.errors)
        remaining = remaining_for_label(
            item,
            history,
            LABELS_INCOMPLETE_LABEL,
            process.label_grace_period,
            now=now,
            exempt=is_blocker,
        )
        if remaining is None or remaining >= timedelta(0):
            return Resolution(NeedsLabelingMessage(label_errors=errors, remaining=remaining))
        return Resolution(
            RemovalMessage(reason=RemovalReason.INCOMPLETE_LABELS, label_errors=errors)
        )

    summary = LabelSummary(
        kind=classification.kind or "",
        priority=classification.priority or "",
        owners=tuple(classification.owners),
    )
    owners = summary.owners

    if not item.has_label(APPROVED_LABEL):
        remaining = remaining_for_label(
            item,
            history,
            NEEDS_APPROVAL_LABEL,
            process.approval_grace_period,
            now=now,
            exempt=is_blocker,
        )
        if remaining is None or remaining >= timedelta(0):
            return Resolution(NeedsApprovalMessage(summary=summary, remaining=remaining), owners)
        return Resolution(RemovalMessage(reason=RemovalReason.UNAPPROVED), owners)

    if process.mode == MilestoneMode.DEV.value:
        return Resolution(CurrentMessage(summary=summary), owners)

    if process.mode == MilestoneMode.FREEZE.value and not is_blocker:
        return Resolution(RemovalMessage(reason=RemovalReason.NON_BLOCKER), owners)

    notes = progress_notes(item, process, history, now=now, is_blocker=is_blocker)
    if notes.needs_attention:
        return Resolution(NeedsAttentionMessage(summary=summary, notes=notes), owners)
    return Resolution(CurrentMessage(summary=summary, notes=notes), owners)


def progress_notes(
    item: TrackedItem,
    process: ProcessConfig,
    history: IssueHistory,
    *,
    now: datetime,
    is_blocker: bool,
) -> ProgressNotes:
    missing_in_progress = not item.has_label(IN_PROGRESS_LABEL)
    if not is_blocker:
        return ProgressNotes(missing_in_progress=missing_in_progress, non_blocker_warning=True)

    interval = process.update_interval
    if interval <= timedelta(0):
        return ProgressNotes(missing_in_progress=missing_in_progress)

    last_update = history.last_modified()
    return ProgressNotes(
        missing_in_progress=missing_in_progress,
        last_updated=last_update if now - last_update > interval else None,
        update_interval=interval,
    )


__all__ = ["IssueHistory", "Resolution", "progress_notes", "resolve"]
