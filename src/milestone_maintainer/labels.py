"""Label vocabulary and classification for milestone issues.

An issue in the active milestone must carry exactly one ``kind/*`` label,
exactly one ``priority/*`` label and at least one ``sig/*`` owner label.
``classify_labels`` checks those rules against fixed lookup tables and
reports human-readable errors for the notification comment.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

# State labels applied by the maintainer (mutually exclusive)
LABELS_INCOMPLETE_LABEL = "milestone/incomplete-labels"
NEEDS_APPROVAL_LABEL = "milestone/needs-approval"
NEEDS_ATTENTION_LABEL = "milestone/needs-attention"
REMOVED_LABEL = "milestone/removed"

MILESTONE_STATE_LABELS: tuple[str, ...] = (
    LABELS_INCOMPLETE_LABEL,
    NEEDS_APPROVAL_LABEL,
    NEEDS_ATTENTION_LABEL,
    REMOVED_LABEL,
)

# Applied by humans, never by the maintainer
APPROVED_LABEL = "status/approved-for-milestone"
IN_PROGRESS_LABEL = "status/in-progress"

BLOCKER_LABEL = "priority/critical-urgent"

SIG_LABEL_PREFIX = "sig/"

KIND_LABELS: Mapping[str, str] = {
    "kind/bug": "Fixes a bug discovered during the current release.",
    "kind/feature": "New functionality.",
    "kind/cleanup": "Adding tests, refactoring, fixing old bugs.",
}

PRIORITY_LABELS: Mapping[str, str] = {
    BLOCKER_LABEL: (
        "Never automatically move out of a release milestone; continually escalate "
        "to contributor and SIG through all available channels."
    ),
    "priority/important-soon": (
        "Escalate to the issue owners and SIG owner; move out of milestone after "
        "several unsuccessful escalation attempts."
    ),
    "priority/important-longterm": (
        "Escalate to the issue owners; move out of the milestone after 1 attempt."
    ),
}


class DuplicateLabelError(ValueError):
    """Raised when more than one label of a single-choice category is present."""


@dataclass(frozen=True)
class LabelClassification:
    kind: str | None
    priority: str | None
    owners: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def quote_label(label: str) -> str:
    """Format a label name as inline markdown code."""
    if label:
        return f"`{label}`"
    return label


def format_label_choices(table: Mapping[str, str]) -> str:
    """Render table keys as "`a`, `b` or `c`" in sorted order."""
    quoted = sorted(quote_label(name) for name in table)
    if len(quoted) == 1:
        return quoted[0]
    return ", ".join(quoted[:-1]) + " or " + quoted[-1]


def unique_label(labels: Iterable[str], table: Mapping[str, str]) -> str | None:
    """Return the single label of ``labels`` found in ``table``.

    Returns ``None`` when no label matches and raises ``DuplicateLabelError``
    when more than one does.
    """
    found: str | None = None
    for name in labels:
        if name not in table:
            continue
        if found is not None:
            raise DuplicateLabelError(f"found both {found!r} and {name!r}")
        found = name
    return found


def owner_labels(labels: Iterable[str], prefix: str = SIG_LABEL_PREFIX) -> list[str]:
    return [name for name in labels if name.startswith(prefix)]


def _exactly_one(labels: list[str], table: Mapping[str, str]) -> str | None:
    try:
        return unique_label(labels, table)
    except DuplicateLabelError:
        return None


def classify_labels(
    labels: Iterable[str],
    *,
    kinds: Mapping[str, str] = KIND_LABELS,
    priorities: Mapping[str, str] = PRIORITY_LABELS,
    owner_prefix: str = SIG_LABEL_PREFIX,
) -> LabelClassification:
    names = list(labels)
    errors: list[str] = []

    kind = _exactly_one(names, kinds)
    if kind is None:
        errors.append(f"_**kind**_: Must specify exactly one of {format_label_choices(kinds)}.")

    priority = _exactly_one(names, priorities)
    if priority is None:
        errors.append(
            f"_**priority**_: Must specify exactly one of {format_label_choices(priorities)}."
        )

    owners = owner_labels(names, owner_prefix)
    if not owners:
        errors.append(
            f"_**sig owner**_: Must specify at least one label prefixed with "
            f"{quote_label(owner_prefix)}."
        )

    return LabelClassification(kind=kind, priority=priority, owners=owners, errors=errors)


__all__ = [
    "APPROVED_LABEL",
    "BLOCKER_LABEL",
    "DuplicateLabelError",
    "IN_PROGRESS_LABEL",
    "KIND_LABELS",
    "LABELS_INCOMPLETE_LABEL",
    "LabelClassification",
    "MILESTONE_STATE_LABELS",
    "NEEDS_APPROVAL_LABEL",
    "NEEDS_ATTENTION_LABEL",
    "PRIORITY_LABELS",
    "REMOVED_LABEL",
    "SIG_LABEL_PREFIX",
    "classify_labels",
    "format_label_choices",
    "owner_labels",
    "quote_label",
    "unique_label",
]
