from __future__ import annotations

from datetime import datetime, timedelta, timezone

from milestone_maintainer.config import ProcessConfig
from milestone_maintainer.messages import (
    CurrentMessage,
    LabelSummary,
    NeedsApprovalMessage,
    NeedsAttentionMessage,
    NeedsLabelingMessage,
    ProgressNotes,
    RemovalMessage,
    RemovalReason,
)
from milestone_maintainer.models import TrackedItem
from milestone_maintainer.notifications import parse_notification
from milestone_maintainer.render import (
    HELP_DETAIL,
    RenderContext,
    format_date,
    format_duration,
    owner_mentions,
    participant_mentions,
    render_message,
    render_notification,
)

SUMMARY = LabelSummary("kind/bug", "priority/important-soon", ("sig/api", "sig/node"))
CTX = RenderContext(ProcessConfig(active_milestone="v1.8", mode="freeze", freeze_date="June 20"))
ITEM = TrackedItem(number=3, milestone="v1.8", author="carol", assignees=["bob", "carol"])


def test_format_duration():
    assert format_duration(timedelta(hours=167)) == "7d"
    assert format_duration(timedelta(hours=25)) == "2d"
    assert format_duration(timedelta(hours=24)) == "1d"
    assert format_duration(timedelta(hours=5, minutes=7)) == "5h7m"
    assert format_duration(timedelta(minutes=42)) == "42m"
    assert format_duration(timedelta(0)) == "0m"


def test_format_date():
    assert format_date(datetime(2017, 1, 2, tzinfo=timezone.utc)) == "Jan 2"


def test_mentions():
    assert participant_mentions(ITEM) == ["@bob", "@carol"]
    assert owner_mentions(["sig/api"], "@kubernetes/sig-{owner}-bugs") == ["@kubernetes/sig-api-bugs"]


def test_needs_approval_warning_and_collapsed_panel():
    text = render_message(NeedsApprovalMessage(SUMMARY, remaining=timedelta(hours=167)), CTX)
    assert "`status/approved-for-milestone`" in text
    assert "within 7d, the issue will be moved out of the v1.8 milestone." in text
    assert "<details>\n<summary>Issue Labels</summary>" in text
    assert "- `sig/api` `sig/node`: Issue will be escalated to these SIGs if needed." in text


def test_needs_approval_blocker_has_no_warning():
    text = render_message(NeedsApprovalMessage(SUMMARY, remaining=None), CTX)
    assert "moved out" not in text


def test_current_panel_is_open():
    text = render_message(CurrentMessage(SUMMARY), CTX)
    assert text.startswith("<details open>")


def test_attention_sections_in_order():
    notes = ProgressNotes(
        missing_in_progress=True,
        last_updated=datetime(2017, 6, 8, tzinfo=timezone.utc),
        update_interval=timedelta(hours=24),
    )
    text = render_message(NeedsAttentionMessage(SUMMARY, notes), CTX)
    progress = text.index("should be in progress")
    updated = text.index("has not been updated since Jun 8")
    reminder = text.index("must be updated every 1d during code freeze")
    assert progress < updated < reminder < text.index("<details>")
    assert "Example update:" in text


def test_non_blocker_freeze_date_warning():
    text = render_message(CurrentMessage(SUMMARY, ProgressNotes(non_blocker_warning=True)), CTX)
    assert "by June 20 it will be moved out of the v1.8 milestone." in text


def test_labeling_lists_errors():
    errors = ("_**kind**_: Must specify exactly one of ...", "_**priority**_: ...")
    text = render_message(NeedsLabelingMessage(errors, remaining=timedelta(hours=72)), CTX)
    assert "within 3d" in text
    assert text.endswith("\n".join(errors))


def test_removal_renders_only_reason():
    unapproved = render_message(RemovalMessage(RemovalReason.UNAPPROVED), CTX)
    assert unapproved.startswith("**Important**")
    assert "for more than 7d" in unapproved
    assert "<details" not in unapproved
    frozen = render_message(RemovalMessage(RemovalReason.NON_BLOCKER), CTX)
    assert "Code freeze is in effect" in frozen
    labels = render_message(
        RemovalMessage(RemovalReason.INCOMPLETE_LABELS, ("_**kind**_: missing",)), CTX
    )
    assert "for more than 3d" in labels
    assert labels.endswith("_**kind**_: missing")


def test_notification_mentions_sigs_only_for_notify_states():
    approval = render_notification(
        NeedsApprovalMessage(SUMMARY, remaining=None), ITEM, CTX, owners=SUMMARY.owners
    )
    assert approval.body.splitlines()[0] == (
        "@bob @carol @kubernetes/sig-api-bugs @kubernetes/sig-node-bugs"
    )
    assert approval.title == "Milestone Issue **Needs Approval**"
    assert approval.body.endswith(HELP_DETAIL)

    current = render_notification(CurrentMessage(SUMMARY), ITEM, CTX, owners=SUMMARY.owners)
    assert current.body.splitlines()[0] == "@bob @carol"


def test_rendered_notification_round_trips():
    note = render_notification(
        NeedsLabelingMessage(("_**kind**_: x",), remaining=timedelta(hours=2)), ITEM, CTX
    )
    assert parse_notification(note.format()) == note
    again = render_notification(
        NeedsLabelingMessage(("_**kind**_: x",), remaining=timedelta(hours=2)), ITEM, CTX
    )
    assert again.format() == note.format()
