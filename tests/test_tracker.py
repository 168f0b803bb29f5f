from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from milestone_maintainer.errors import IndeterminateHistoryError, MaintainerError, MutationError
from milestone_maintainer.github_rest import GitHubAPIError
from milestone_maintainer.logging import configure_logging
from milestone_maintainer.models import Comment, LabelEvent, TrackedItem
from milestone_maintainer.tracker import (
    GitHubIssueTracker,
    TrackerHistory,
    item_from_payload,
    parse_timestamp,
)

NOW = datetime(2017, 6, 10, 12, 0, tzinfo=timezone.utc)
BOT = "release-bot"


class _StubClient:
    repo = "acme/widgets"

    def __init__(self, *, fail: bool = False, milestone: int | None = 4):
        self.fail = fail
        self.milestone = milestone
        self.calls: list[tuple[str, Any]] = []

    def _maybe_fail(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if self.fail:
            raise GitHubAPIError(f"{name} failed", status=502)

    def find_milestone(self, title):
        self._maybe_fail("find_milestone", title)
        return self.milestone

    def list_issues(self, *, milestone, state):
        self._maybe_fail("list_issues", milestone, state)
        return [{"number": 1, "title": "x", "milestone": {"title": "v1.8"}}]

    def get_issue(self, number):
        self._maybe_fail("get_issue", number)
        return {"number": number}

    def list_issue_events(self, number):
        self._maybe_fail("list_issue_events", number)
        return [
            {
                "event": "labeled",
                "label": {"name": "milestone/needs-approval"},
                "actor": {"login": BOT},
                "created_at": "2017-06-01T10:00:00Z",
            }
        ]

    def list_issue_comments(self, number):
        self._maybe_fail("list_issue_comments", number)
        return [{"id": 9, "user": {"login": "alice"}, "body": "hi", "created_at": "2017-06-02T10:00:00Z"}]

    def add_labels(self, number, labels):
        self._maybe_fail("add_labels", number, list(labels))

    def remove_label(self, number, label):
        self._maybe_fail("remove_label", number, label)

    def create_comment(self, number, body):
        self._maybe_fail("create_comment", number, body)

    def delete_comment(self, comment_id):
        self._maybe_fail("delete_comment", comment_id)

    def clear_milestone(self, number):
        self._maybe_fail("clear_milestone", number)


def test_item_from_payload():
    item = item_from_payload(
        {
            "number": 12,
            "title": "Flaky test",
            "state": "open",
            "labels": [{"name": "kind/bug"}, "sig/api"],
            "milestone": {"title": "v1.8"},
            "user": {"login": "alice"},
            "assignees": [{"login": "bob"}, {}],
            "created_at": "2017-06-01T00:00:00Z",
            "pull_request": {"url": "..."},
        }
    )
    assert item.labels == ["kind/bug", "sig/api"]
    assert item.milestone == "v1.8"
    assert item.author == "alice"
    assert item.assignees == ["bob"]
    assert item.created_at == datetime(2017, 6, 1, tzinfo=timezone.utc)
    assert item.is_pull_request


def test_parse_timestamp():
    assert parse_timestamp("2017-06-01T12:30:00Z") == datetime(2017, 6, 1, 12, 30, tzinfo=timezone.utc)
    assert parse_timestamp("garbage") is None
    assert parse_timestamp(None) is None


def test_reads_are_parsed():
    tracker = GitHubIssueTracker(_StubClient())
    assert tracker.list_milestone_issues("v1.8")[0].milestone == "v1.8"
    event = tracker.list_events(1)[0]
    assert event == LabelEvent("labeled", "milestone/needs-approval", BOT, datetime(2017, 6, 1, 10, tzinfo=timezone.utc))
    assert tracker.list_comments(1)[0].author == "alice"


def test_read_failure_is_indeterminate():
    tracker = GitHubIssueTracker(_StubClient(fail=True))
    with pytest.raises(IndeterminateHistoryError) as excinfo:
        tracker.list_events(3)
    assert excinfo.value.issue_number == 3


def test_missing_milestone_raises():
    tracker = GitHubIssueTracker(_StubClient(milestone=None))
    with pytest.raises(MaintainerError, match="not found"):
        tracker.list_milestone_issues("v9")


def test_write_failure_is_mutation_error():
    tracker = GitHubIssueTracker(_StubClient(fail=True))
    with pytest.raises(MutationError):
        tracker.add_label(3, "milestone/removed")


def test_dry_run_never_writes(capsys):
    configure_logging()
    client = _StubClient()
    tracker = GitHubIssueTracker(client, dry_run=True)
    tracker.add_label(3, "milestone/removed")
    tracker.remove_label(3, "milestone/needs-approval")
    tracker.post_comment(3, "body")
    tracker.delete_comment(3, 55)
    tracker.clear_milestone(3)
    assert client.calls == []
    assert "[DRY]" in capsys.readouterr().out


def test_live_writes_reach_client():
    client = _StubClient()
    tracker = GitHubIssueTracker(client)
    tracker.add_label(3, "milestone/removed")
    tracker.delete_comment(3, 55)
    assert client.calls == [("add_labels", (3, ["milestone/removed"])), ("delete_comment", (55,))]


class _HistoryTracker:
    def __init__(self, events: list[LabelEvent], comments: list[Comment]):
        self._events = events
        self._comments = comments
        self.reads = 0

    def list_events(self, number):
        self.reads += 1
        return self._events

    def list_comments(self, number):
        self.reads += 1
        return self._comments


def test_label_applied_at_uses_latest_bot_event():
    events = [
        LabelEvent("labeled", "milestone/needs-approval", BOT, NOW - timedelta(days=3)),
        LabelEvent("labeled", "milestone/needs-approval", "alice", NOW - timedelta(days=2)),
        LabelEvent("unlabeled", "milestone/needs-approval", BOT, NOW - timedelta(days=2)),
        LabelEvent("labeled", "milestone/needs-approval", BOT, NOW - timedelta(days=1)),
    ]
    source = _HistoryTracker(events, [])
    history = TrackerHistory(source, TrackedItem(number=1), BOT)
    assert history.label_applied_at("milestone/needs-approval") == NOW - timedelta(days=1)
    assert history.label_applied_at("milestone/removed") is None
    assert source.reads == 1


def test_last_modified_ignores_bot_activity():
    item = TrackedItem(number=1, created_at=NOW - timedelta(days=10), updated_at=NOW)
    events = [
        LabelEvent("labeled", "sig/api", "alice", NOW - timedelta(days=4)),
        LabelEvent("labeled", "milestone/needs-attention", BOT, NOW - timedelta(hours=1)),
    ]
    comments = [
        Comment(1, "bob", "update", NOW - timedelta(days=2)),
        Comment(2, BOT, "[MILESTONENOTIFIER] x", NOW - timedelta(minutes=5)),
    ]
    history = TrackerHistory(_HistoryTracker(events, comments), item, BOT)
    assert history.last_modified() == NOW - timedelta(days=2)
