"""Per-issue milestone maintenance cycle and the run over a whole milestone."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .applier import ApplyOutcome, apply_change
from .config import (
    DEFAULT_OWNER_MENTION_TEMPLATE,
    MaintainerConfig,
    ProcessConfig,
    validate_maintainer,
)
from .errors import IndeterminateHistoryError, MutationError, classify_error
from .logging import StructuredLogger, get_logger
from .models import STATE_CONFIGS, IssueChange, LifecycleState, TrackedItem
from .notifications import latest_notification_comment
from .render import RenderContext, render_notification
from .resolver import IssueHistory, Resolution, resolve
from .tracker import IssueTracker, TrackerHistory

# Outcome of one issue's cycle
STATUS_IGNORED = "ignored"
STATUS_SKIPPED = "skipped"  # history unavailable, retried next run
STATUS_FAILED = "failed"  # a write failed part way
STATUS_UNCHANGED = "unchanged"
STATUS_UPDATED = "updated"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MungeResult:
    number: int
    status: str
    state: LifecycleState | None = None
    outcome: ApplyOutcome | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "status": self.status,
            "state": self.state.value if self.state else None,
            "changes": self.outcome.to_dict() if self.outcome else None,
            "error": self.error,
        }


class MilestoneMaintainer:
    """Shepherds the issues of the active milestone through the release process."""

    def __init__(
        self,
        process: ProcessConfig,
        tracker: IssueTracker,
        *,
        bot_name: str,
        owner_mention_template: str = DEFAULT_OWNER_MENTION_TEMPLATE,
        clock: Callable[[], datetime] = _utcnow,
        logger: StructuredLogger | None = None,
    ) -> None:
        validate_maintainer(bot_name, owner_mention_template)
        self.process = process
        self.tracker = tracker
        self.bot_name = bot_name
        self.render_context = RenderContext(process, owner_mention_template)
        self._clock = clock
        self._log = (logger or get_logger()).bind(milestone=process.active_milestone)

    @classmethod
    def from_config(
        cls, cfg: MaintainerConfig, tracker: IssueTracker, **kwargs: Any
    ) -> MilestoneMaintainer:
        return cls(
            cfg.process,
            tracker,
            bot_name=cfg.bot_name,
            owner_mention_template=cfg.owner_mention_template,
            **kwargs,
        )

    def now(self) -> datetime:
        return self._clock()

    def should_ignore(self, item: TrackedItem) -> bool:
        """Only open issues in the active milestone are maintained."""
        if item.is_pull_request or not item.is_open:
            return True
        return not item.in_milestone(self.process.active_milestone)

    def resolve(self, item: TrackedItem, history: IssueHistory, *, now: datetime) -> Resolution:
        return resolve(item, self.process, history, now=now)

    def issue_change(
        self, item: TrackedItem, history: IssueHistory, *, now: datetime
    ) -> IssueChange:
        """Compute (without applying) the changes that reflect ``item``'s state.

        Raises ``IndeterminateHistoryError`` when no decision can be made.
        """
        resolution = self.resolve(item, history, now=now)
        state_config = STATE_CONFIGS[resolution.state]
        notification = render_notification(
            resolution.message, item, self.render_context, owners=resolution.owners
        )
        return IssueChange(
            state=resolution.state,
            notification=notification,
            label=state_config.label,
            remove_from_milestone=resolution.state is LifecycleState.NEEDS_REMOVAL,
            comment_interval=self.process.warning_interval if state_config.warn_on_interval else None,
        )

    def munge(self, item: TrackedItem) -> MungeResult:
        """Run one full cycle for ``item``; tracker failures are reported, not raised."""
        if self.should_ignore(item):
            return MungeResult(item.number, STATUS_IGNORED)

        now = self.now()
        history = TrackerHistory(self.tracker, item, self.bot_name)
        try:
            change = self.issue_change(item, history, now=now)
            prior = latest_notification_comment(history.comments(), self.bot_name)
        except IndeterminateHistoryError as exc:
            self._log.log_skip(item.number, str(exc))
            return MungeResult(item.number, STATUS_SKIPPED, error=str(exc))

        self._log.log_resolution(item.number, change.state.value, label=change.label)
        try:
            outcome = apply_change(self.tracker, item, change, prior, now=now)
        except MutationError as exc:
            info = classify_error(exc)
            self._log.log_error(
                f"issue #{item.number} update aborted",
                error=info.message,
                category=info.category,
                issue_number=item.number,
            )
            return MungeResult(item.number, STATUS_FAILED, state=change.state, error=info.message)

        status = STATUS_UPDATED if outcome.changed else STATUS_UNCHANGED
        return MungeResult(item.number, status, state=change.state, outcome=outcome)

    def munge_all(self, items: Iterable[TrackedItem], *, max_workers: int = 1) -> list[MungeResult]:
        items = list(items)
        if max_workers <= 1 or len(items) <= 1:
            return [self.munge(item) for item in items]
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(self.munge, items))

    def run(self, *, max_workers: int = 1) -> dict[str, Any]:
        """Maintain every open issue of the active milestone and summarise."""
        milestone = self.process.active_milestone
        with self._log.timed_operation("milestone_run", mode=self.process.mode):
            items = self.tracker.list_milestone_issues(milestone)
            results = self.munge_all(items, max_workers=max_workers)
        return summarize(results, milestone=milestone, mode=self.process.mode)


def summarize(results: list[MungeResult], *, milestone: str, mode: str) -> dict[str, Any]:
    states = Counter(r.state.value for r in results if r.state is not None)
    statuses = Counter(r.status for r in results)
    return {
        "milestone": milestone,
        "mode": mode,
        "totals": {
            "processed": len(results),
            "updated": statuses[STATUS_UPDATED],
            "unchanged": statuses[STATUS_UNCHANGED],
            "skipped": statuses[STATUS_SKIPPED],
            "failed": statuses[STATUS_FAILED],
            "ignored": statuses[STATUS_IGNORED],
            "notified": sum(1 for r in results if r.outcome is not None and r.outcome.comment_posted),
            "removed": sum(
                1 for r in results if r.outcome is not None and r.outcome.milestone_cleared
            ),
        },
        "states": {state.value: states[state.value] for state in LifecycleState},
        "issues": [r.to_dict() for r in results],
    }


__all__ = [
    "MilestoneMaintainer",
    "MungeResult",
    "STATUS_FAILED",
    "STATUS_IGNORED",
    "STATUS_SKIPPED",
    "STATUS_UNCHANGED",
    "STATUS_UPDATED",
    "summarize",
]
