"""Notification comments posted by the maintainer.

A notification is stored on the issue as a plain comment::

    [MILESTONENOTIFIER] Milestone Issue **Current**

    <body>

``parse_notification`` is the exact inverse of ``format_notification`` so a
comment read back from the tracker compares equal to the notification it
was posted from. That equality (plus the repeat interval) is what keeps the
maintainer from re-posting the same comment on every run.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from .models import Comment

MILESTONE_NOTIFIER_NAME = "MilestoneNotifier"

_NOTIFICATION_RE = re.compile(r"^\[([^\]\s]+)\] *?([^\n]*)")


@dataclass(frozen=True)
class Notification:
    name: str
    title: str
    body: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", self.name.strip().upper())
        object.__setattr__(self, "title", self.title.strip())
        object.__setattr__(self, "body", self.body.strip())

    def format(self) -> str:
        return format_notification(self)


def format_notification(notification: Notification) -> str:
    text = f"[{notification.name}]"
    if notification.title:
        text += f" {notification.title}"
    if notification.body:
        text += f"\n\n{notification.body}"
    return text


def parse_notification(text: str | None) -> Notification | None:
    """Parse comment text back into a notification; ``None`` if it is not one."""
    if not text:
        return None
    match = _NOTIFICATION_RE.match(text)
    if not match:
        return None
    return Notification(match.group(1), match.group(2), text[match.end():])


def is_notification_from(comment: Comment, name: str, bot_name: str) -> bool:
    if comment.author != bot_name:
        return False
    parsed = parse_notification(comment.body)
    return parsed is not None and parsed.name == name.upper()


def latest_notification_comment(
    comments: Iterable[Comment],
    bot_name: str,
    name: str = MILESTONE_NOTIFIER_NAME,
) -> Comment | None:
    """Most recent notification comment posted by the bot.

    The maintainer deletes its previous notification before posting a new
    one, so normally at most one exists.
    """
    latest: Comment | None = None
    for comment in comments:
        if is_notification_from(comment, name, bot_name):
            latest = comment
    return latest


def notification_is_current(
    notification: Notification,
    comment: Comment | None,
    interval: timedelta | None,
    *,
    now: datetime,
) -> bool:
    """True when ``comment`` already carries ``notification`` and is fresh.

    Fresh means no repeat interval applies, or the comment is younger than
    the interval.
    """
    if comment is None:
        return False
    previous = parse_notification(comment.body)
    if previous is None or previous != notification:
        return False
    if interval is None:
        return True
    return comment.created_at is not None and now - comment.created_at < interval


__all__ = [
    "MILESTONE_NOTIFIER_NAME",
    "Notification",
    "format_notification",
    "is_notification_from",
    "latest_notification_comment",
    "notification_is_current",
    "parse_notification",
]
