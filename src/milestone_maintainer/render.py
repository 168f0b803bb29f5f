"""Render milestone messages into notification comments.

Rendering is pure: identical inputs always produce identical text, which is
what lets ``notifications.notification_is_current`` detect that a posted
comment is still up to date.

Comment layout::

    @author @assignee @kubernetes/sig-foo-bugs

    <sections for the resolved state>

    <details>Help ...</details>
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from .config import DEFAULT_OWNER_MENTION_TEMPLATE, ProcessConfig
from .labels import (
    APPROVED_LABEL,
    BLOCKER_LABEL,
    IN_PROGRESS_LABEL,
    KIND_LABELS,
    PRIORITY_LABELS,
    SIG_LABEL_PREFIX,
    quote_label,
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
from .models import STATE_CONFIGS, TrackedItem
from .notifications import MILESTONE_NOTIFIER_NAME, Notification

HELP_DETAIL = """<details>
<summary>Help</summary>
<ul>
 <li><a href="https://github.com/kubernetes/community/blob/master/contributors/devel/release/issues.md">Additional instructions</a></li>
 <li><a href="https://github.com/kubernetes/test-infra/blob/master/commands.md">Commands for setting labels</a></li>
</ul>
</details>"""

UPDATE_EXAMPLE = """Example update:

```
ACK.  In progress
ETA: DD/MM/YYYY
Risks: Complicated fix required
```"""

_DAY = timedelta(days=1)


@dataclass(frozen=True)
class RenderContext:
    process: ProcessConfig
    owner_mention_template: str = DEFAULT_OWNER_MENTION_TEMPLATE

    @property
    def milestone(self) -> str:
        return f"{self.process.active_milestone} milestone"


def format_duration(duration: timedelta) -> str:
    """Whole days (rounded up) when at least a day, otherwise hours and minutes."""
    if duration >= _DAY:
        days, rest = divmod(duration, _DAY)
        return f"{days + 1 if rest else days}d"
    minutes = max(0, int(duration.total_seconds() // 60))
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h{minutes}m"
    return f"{minutes}m"


def format_date(value: datetime) -> str:
    """Short month/day form, e.g. ``Jan 2``."""
    return f"{value:%b} {value.day}"


def _removal_warning(remaining: timedelta | None, subject: str, ctx: RenderContext) -> str:
    if remaining is None:
        return ""
    return (
        f" If {subject} within {format_duration(remaining)}, the issue will be moved out "
        f"of the {ctx.milestone}."
    )


def _label_errors(errors: Iterable[str]) -> str:
    return "\n".join(errors)


def _summary_panel(summary: LabelSummary, *, open_panel: bool) -> str:
    owners = " ".join(quote_label(label) for label in summary.owners)
    return "\n".join(
        [
            "<details open>" if open_panel else "<details>",
            "<summary>Issue Labels</summary>",
            "",
            f"- {owners}: Issue will be escalated to these SIGs if needed.",
            f"- {quote_label(summary.priority)}: {PRIORITY_LABELS.get(summary.priority, '')}",
            f"- {quote_label(summary.kind)}: {KIND_LABELS.get(summary.kind, '')}",
            "</details>",
        ]
    )


def _progress_sections(notes: ProgressNotes, ctx: RenderContext) -> list[str]:
    mode = ctx.process.mode
    sections: list[str] = []
    if notes.missing_in_progress:
        sections.append(
            f"**Action required**: During code {mode}, issues in the milestone should be "
            "in progress.\n"
            "If this issue is not being actively worked on, please remove it from the "
            "milestone.\n"
            f"If it is being worked on, please add the {quote_label(IN_PROGRESS_LABEL)} "
            "label so it can be tracked with other in-flight issues."
        )
    if notes.last_updated is not None:
        sections.append(
            "**Action Required**: This issue has not been updated since "
            f"{format_date(notes.last_updated)}. Please provide an update."
        )
    if notes.update_interval is not None:
        sections.append(
            f"**Note**: This issue is marked as {quote_label(BLOCKER_LABEL)}, and must be "
            f"updated every {format_duration(notes.update_interval)} during code {mode}."
            f"\n\n{UPDATE_EXAMPLE}"
        )
    if notes.non_blocker_warning:
        sections.append(
            "**Note**: If this issue is not resolved or labeled as "
            f"{quote_label(BLOCKER_LABEL)} by {ctx.process.freeze_date} it will be moved "
            f"out of the {ctx.milestone}."
        )
    return sections


def _render_current(message: CurrentMessage, ctx: RenderContext) -> list[str]:
    sections = _progress_sections(message.notes, ctx)
    sections.append(_summary_panel(message.summary, open_panel=True))
    return sections


def _render_needs_attention(message: NeedsAttentionMessage, ctx: RenderContext) -> list[str]:
    sections = _progress_sections(message.notes, ctx)
    sections.append(_summary_panel(message.summary, open_panel=False))
    return sections


def _render_needs_approval(message: NeedsApprovalMessage, ctx: RenderContext) -> list[str]:
    warning = _removal_warning(message.remaining, "the label is not applied", ctx)
    return [
        f"**Action required**: This issue must have the {quote_label(APPROVED_LABEL)} "
        f"label applied by a SIG maintainer.{warning}",
        _summary_panel(message.summary, open_panel=False),
    ]


def _render_needs_labeling(message: NeedsLabelingMessage, ctx: RenderContext) -> list[str]:
    warning = _removal_warning(message.remaining, "the required changes are not made", ctx)
    return [
        f"**Action required**: This issue requires label changes.{warning}\n\n"
        + _label_errors(message.label_errors)
    ]


def _render_removal(message: RemovalMessage, ctx: RenderContext) -> list[str]:
    process = ctx.process
    if message.reason is RemovalReason.UNAPPROVED:
        return [
            f"**Important**: This issue was missing the {quote_label(APPROVED_LABEL)} label "
            f"for more than {format_duration(process.approval_grace_period)}."
        ]
    if message.reason is RemovalReason.NON_BLOCKER:
        return [
            "**Important**: Code freeze is in effect and only issues with "
            f"{quote_label(BLOCKER_LABEL)} may remain in the {ctx.milestone}."
        ]
    return [
        f"**Important**: This issue was missing labels required for the {ctx.milestone} "
        f"for more than {format_duration(process.label_grace_period)}:\n\n"
        + _label_errors(message.label_errors)
    ]


_RENDERERS: dict[type, Callable[[Any, RenderContext], list[str]]] = {
    CurrentMessage: _render_current,
    NeedsAttentionMessage: _render_needs_attention,
    NeedsApprovalMessage: _render_needs_approval,
    NeedsLabelingMessage: _render_needs_labeling,
    RemovalMessage: _render_removal,
}


def render_message(message: MilestoneMessage, ctx: RenderContext) -> str:
    try:
        renderer = _RENDERERS[type(message)]
    except KeyError:
        raise TypeError(f"no renderer for {type(message).__name__}") from None
    return "\n\n".join(renderer(message, ctx))


def participant_mentions(item: TrackedItem) -> list[str]:
    users = {login for login in [item.author, *item.assignees] if login}
    return [f"@{login}" for login in sorted(users)]


def owner_mentions(owners: Iterable[str], template: str) -> list[str]:
    mentions: list[str] = []
    for label in owners:
        owner = label[len(SIG_LABEL_PREFIX):] if label.startswith(SIG_LABEL_PREFIX) else label
        mentions.append(template.format(owner=owner))
    return mentions


def render_notification(
    message: MilestoneMessage,
    item: TrackedItem,
    ctx: RenderContext,
    *,
    owners: Iterable[str] = (),
) -> Notification:
    """Build the full notification (title, mentions, sections, help block)."""
    state_config = STATE_CONFIGS[message.state]
    mentions = participant_mentions(item)
    if state_config.notify_sigs:
        mentions.extend(owner_mentions(owners, ctx.owner_mention_template))
    body = f"{' '.join(mentions)}\n\n{render_message(message, ctx)}\n\n{HELP_DETAIL}"
    return Notification(MILESTONE_NOTIFIER_NAME, state_config.title, body)


__all__ = [
    "HELP_DETAIL",
    "RenderContext",
    "format_date",
    "format_duration",
    "owner_mentions",
    "participant_mentions",
    "render_message",
    "render_notification",
]
