"""Issue tracker collaborator.

``IssueTracker`` is the narrow contract the maintainer needs from an issue
tracker. ``GitHubIssueTracker`` implements it over ``GitHubRestClient``:

 - reads that fail raise ``IndeterminateHistoryError``
 - writes that fail raise ``MutationError``
 - in dry-run mode writes are logged (marked ``[DRY]``) and never sent

``TrackerHistory`` exposes one issue's label events and comments to the
resolver, fetching each at most once and only when a decision needs it.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Protocol, TypeVar

from .errors import IndeterminateHistoryError, MaintainerError, MutationError
from .github_rest import GitHubAPIError, GitHubRestClient
from .logging import get_logger
from .models import Comment, LabelEvent, TrackedItem

T = TypeVar("T")


class IssueTracker(Protocol):  # narrow contract used by the maintainer
    def list_milestone_issues(self, milestone: str) -> list[TrackedItem]: ...  # pragma: no cover

    def get_issue(self, number: int) -> TrackedItem: ...  # pragma: no cover

    def list_events(self, number: int) -> list[LabelEvent]: ...  # pragma: no cover

    def list_comments(self, number: int) -> list[Comment]: ...  # pragma: no cover

    def add_label(self, number: int, label: str) -> None: ...  # pragma: no cover

    def remove_label(self, number: int, label: str) -> None: ...  # pragma: no cover

    def post_comment(self, number: int, body: str) -> None: ...  # pragma: no cover

    def delete_comment(self, number: int, comment_id: int) -> None: ...  # pragma: no cover

    def clear_milestone(self, number: int) -> None: ...  # pragma: no cover


def parse_timestamp(value: Any) -> datetime | None:
    """Parse GitHub ISO-8601 timestamps (``2017-06-01T12:00:00Z``)."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _login(user: Any) -> str | None:
    if isinstance(user, dict):
        login = user.get("login")
        if isinstance(login, str):
            return login
    return None


def item_from_payload(entry: dict[str, Any]) -> TrackedItem:
    labels: list[str] = []
    for lbl in entry.get("labels") or []:
        if isinstance(lbl, dict) and isinstance(lbl.get("name"), str):
            labels.append(lbl["name"])
        elif isinstance(lbl, str):
            labels.append(lbl)
    milestone = entry.get("milestone")
    milestone_title: str | None = None
    if isinstance(milestone, dict) and isinstance(milestone.get("title"), str):
        milestone_title = milestone["title"]
    elif isinstance(milestone, str):
        milestone_title = milestone
    assignees = [login for login in (_login(a) for a in entry.get("assignees") or []) if login]
    return TrackedItem(
        number=int(entry.get("number") or 0),
        title=str(entry.get("title") or ""),
        state=str(entry.get("state") or "open"),
        labels=labels,
        milestone=milestone_title,
        author=_login(entry.get("user")),
        assignees=assignees,
        created_at=parse_timestamp(entry.get("created_at")),
        updated_at=parse_timestamp(entry.get("updated_at")),
        is_pull_request="pull_request" in entry,
    )


def event_from_payload(entry: dict[str, Any]) -> LabelEvent:
    label = entry.get("label")
    return LabelEvent(
        event=str(entry.get("event") or ""),
        label=label.get("name") if isinstance(label, dict) else None,
        actor=_login(entry.get("actor")),
        created_at=parse_timestamp(entry.get("created_at")),
    )


def comment_from_payload(entry: dict[str, Any]) -> Comment:
    return Comment(
        id=int(entry.get("id") or 0),
        author=_login(entry.get("user")),
        body=str(entry.get("body") or ""),
        created_at=parse_timestamp(entry.get("created_at")),
    )


class GitHubIssueTracker:
    def __init__(self, client: GitHubRestClient, *, dry_run: bool = False) -> None:
        self.client = client
        self.dry_run = dry_run
        self._log = get_logger()

    def _read(self, what: str, number: int | None, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except GitHubAPIError as exc:
            raise IndeterminateHistoryError(
                f"failed to read {what}: {exc}", issue_number=number
            ) from exc

    def _write(self, action: str, number: int, fn: Callable[[], object], **detail: Any) -> None:
        self._log.log_issue_action(action, number, dry_run=self.dry_run, **detail)
        if self.dry_run:
            return
        try:
            fn()
        except GitHubAPIError as exc:
            raise MutationError(f"{action} failed: {exc}", issue_number=number) from exc

    # ---- reads --------------------------------------------------------
    def list_milestone_issues(self, milestone: str) -> list[TrackedItem]:
        try:
            number = self.client.find_milestone(milestone)
            if number is None:
                raise MaintainerError(f"milestone {milestone!r} not found in {self.client.repo}")
            payload = self.client.list_issues(milestone=number, state="open")
        except GitHubAPIError as exc:
            raise MaintainerError(f"failed to list issues for {milestone!r}: {exc}") from exc
        return [item_from_payload(entry) for entry in payload]

    def get_issue(self, number: int) -> TrackedItem:
        return item_from_payload(self._read("issue", number, lambda: self.client.get_issue(number)))

    def list_events(self, number: int) -> list[LabelEvent]:
        payload = self._read("events", number, lambda: self.client.list_issue_events(number))
        return [event_from_payload(entry) for entry in payload]

    def list_comments(self, number: int) -> list[Comment]:
        payload = self._read("comments", number, lambda: self.client.list_issue_comments(number))
        return [comment_from_payload(entry) for entry in payload]

    # ---- writes -------------------------------------------------------
    def add_label(self, number: int, label: str) -> None:
        self._write("label_add", number, lambda: self.client.add_labels(number, [label]), label=label)

    def remove_label(self, number: int, label: str) -> None:
        self._write(
            "label_remove", number, lambda: self.client.remove_label(number, label), label=label
        )

    def post_comment(self, number: int, body: str) -> None:
        self._write("comment_post", number, lambda: self.client.create_comment(number, body))

    def delete_comment(self, number: int, comment_id: int) -> None:
        self._write(
            "comment_delete",
            number,
            lambda: self.client.delete_comment(comment_id),
            comment_id=comment_id,
        )

    def clear_milestone(self, number: int) -> None:
        self._write("milestone_clear", number, lambda: self.client.clear_milestone(number))


class TrackerHistory:
    """Lazily fetched label events and comments for one issue."""

    def __init__(self, tracker: IssueTracker, item: TrackedItem, bot_name: str) -> None:
        self.tracker = tracker
        self.item = item
        self.bot_name = bot_name
        self._events: list[LabelEvent] | None = None
        self._comments: list[Comment] | None = None

    def events(self) -> list[LabelEvent]:
        if self._events is None:
            self._events = self.tracker.list_events(self.item.number)
        return self._events

    def comments(self) -> list[Comment]:
        if self._comments is None:
            self._comments = self.tracker.list_comments(self.item.number)
        return self._comments

    def label_applied_at(self, label: str) -> datetime | None:
        latest: datetime | None = None
        for event in self.events():
            if event.event == "labeled" and event.label == label and event.actor == self.bot_name:
                latest = event.created_at
        return latest

    def last_modified(self) -> datetime:
        """Most recent activity on the issue not caused by the maintainer."""
        candidates: list[datetime] = []
        if self.item.created_at is not None:
            candidates.append(self.item.created_at)
        for comment in self.comments():
            if comment.author != self.bot_name and comment.created_at is not None:
                candidates.append(comment.created_at)
        for event in self.events():
            if event.actor != self.bot_name and event.created_at is not None:
                candidates.append(event.created_at)
        if not candidates:
            if self.item.updated_at is None:
                raise IndeterminateHistoryError(
                    "last modification time unknown", issue_number=self.item.number
                )
            return self.item.updated_at
        return max(candidates)


__all__ = [
    "GitHubIssueTracker",
    "IssueTracker",
    "TrackerHistory",
    "comment_from_payload",
    "event_from_payload",
    "item_from_payload",
    "parse_timestamp",
]
