from __future__ import annotations

import os
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, fields, replace
from datetime import timedelta
from pathlib import Path
from typing import Any, cast

import yaml

from .models import MilestoneMode

DEFAULT_WARNING_INTERVAL = timedelta(hours=24)
DEFAULT_LABEL_GRACE_PERIOD = timedelta(hours=72)
DEFAULT_APPROVAL_GRACE_PERIOD = timedelta(hours=168)
DEFAULT_SLUSH_UPDATE_INTERVAL = timedelta(hours=72)
DEFAULT_FREEZE_UPDATE_INTERVAL = timedelta(hours=24)
DEFAULT_OWNER_MENTION_TEMPLATE = "@kubernetes/sig-{owner}-bugs"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h|d)")
_DURATION_UNITS = {
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
}


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class ProcessConfig:
    """Release process settings; immutable for one resolution pass."""

    active_milestone: str
    mode: str = MilestoneMode.DEV.value
    warning_interval: timedelta = DEFAULT_WARNING_INTERVAL
    label_grace_period: timedelta = DEFAULT_LABEL_GRACE_PERIOD
    approval_grace_period: timedelta = DEFAULT_APPROVAL_GRACE_PERIOD
    slush_update_interval: timedelta = DEFAULT_SLUSH_UPDATE_INTERVAL
    freeze_update_interval: timedelta = DEFAULT_FREEZE_UPDATE_INTERVAL
    freeze_date: str = ""

    @property
    def update_interval(self) -> timedelta:
        """Expected interval between updates to a blocker in the current mode."""
        if self.mode == MilestoneMode.SLUSH.value:
            return self.slush_update_interval
        if self.mode == MilestoneMode.FREEZE.value:
            return self.freeze_update_interval
        return timedelta(0)


@dataclass
class MaintainerConfig:
    source_file: Path | None
    process: ProcessConfig
    github_repo: str | None = None
    bot_name: str = ""
    owner_mention_template: str = DEFAULT_OWNER_MENTION_TEMPLATE
    # Logging configuration
    logging_json_enabled: bool = False
    logging_level: str = "INFO"
    # Concurrency configuration
    concurrency_enabled: bool = False
    concurrency_max_workers: int = 4
    dry_run_default: bool = False
    extra: dict[str, Any] = field(default_factory=dict)


def parse_duration(value: Any, name: str = "duration") -> timedelta:
    """Parse ``72h`` / ``1h30m`` / ``7d`` / bare seconds into a timedelta."""
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ConfigError(f"{name}: invalid duration {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)
    text = str(value).strip()
    if not text:
        raise ConfigError(f"{name}: empty duration")
    sign = 1
    if text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text.isdigit():
        return sign * timedelta(seconds=int(text))
    total = timedelta(0)
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text) or pos == 0:
        raise ConfigError(f"{name}: invalid duration {value!r}")
    return sign * total


def _duration_greater_than_zero(name: str, value: timedelta) -> str | None:
    if value <= timedelta(0):
        return f"{name} must be greater than zero"
    return None


# Option name -> validator returning an error message (or None)
_VALIDATORS: dict[str, Callable[[ProcessConfig, str], str | None]] = {
    "active_milestone": lambda p, n: None if p.active_milestone else f"{n} must be supplied",
    "mode": lambda p, n: (
        None
        if p.mode in {m.value for m in MilestoneMode}
        else f"{n} must be one of {sorted(m.value for m in MilestoneMode)}"
    ),
    "warning_interval": lambda p, n: _duration_greater_than_zero(n, p.warning_interval),
    "label_grace_period": lambda p, n: _duration_greater_than_zero(n, p.label_grace_period),
    "approval_grace_period": lambda p, n: _duration_greater_than_zero(n, p.approval_grace_period),
    "slush_update_interval": lambda p, n: _duration_greater_than_zero(n, p.slush_update_interval),
    "freeze_update_interval": lambda p, n: _duration_greater_than_zero(
        n, p.freeze_update_interval
    ),
    "freeze_date": lambda p, n: (
        f"{n} must be supplied when mode is 'slush'"
        if p.mode == MilestoneMode.SLUSH.value and not p.freeze_date
        else None
    ),
}


def validate_process(process: ProcessConfig, names: Iterable[str] | None = None) -> None:
    """Run option validators (all, or only ``names``) and raise on failure."""
    selected = set(names) if names is not None else set(_VALIDATORS)
    problems: list[str] = []
    for name, validator in _VALIDATORS.items():
        if name not in selected:
            continue
        problem = validator(process, name)
        if problem:
            problems.append(problem)
    if problems:
        raise ConfigError("; ".join(problems))


def update_process(process: ProcessConfig, **changes: Any) -> ProcessConfig:
    """Apply runtime option changes, validating only the options that changed."""
    known = {f.name for f in fields(ProcessConfig)}
    unknown = sorted(set(changes) - known)
    if unknown:
        raise ConfigError(f"unknown option(s): {', '.join(unknown)}")
    normalized: dict[str, Any] = {}
    for name, value in changes.items():
        if name.endswith(("_interval", "_period")):
            normalized[name] = parse_duration(value, name)
        elif name == "mode" and isinstance(value, MilestoneMode):
            normalized[name] = value.value
        else:
            normalized[name] = "" if value is None else str(value)
    updated = replace(process, **normalized)
    changed = {name for name in normalized if getattr(process, name) != normalized[name]}
    # freeze_date depends on mode, so a mode change re-checks it
    if "mode" in changed:
        changed.add("freeze_date")
    validate_process(updated, changed)
    return updated


def owner_mention_problem(template: str) -> str | None:
    """Describe why ``template`` cannot render an owner mention, if it cannot."""
    try:
        template.format(owner="sig")
    except (AttributeError, KeyError, IndexError, ValueError) as exc:
        return (
            f"owner_mention_template {template!r} is invalid ({exc!r}); "
            "only the {owner} placeholder is supported"
        )
    return None


def validate_maintainer(bot_name: str, owner_mention_template: str) -> None:
    """Reject settings that would break notification matching or rendering."""
    problems: list[str] = []
    # The bot's own comments and label events are recognised by this login
    if not bot_name.strip():
        problems.append("bot_name must be supplied")
    template_problem = owner_mention_problem(owner_mention_template)
    if template_problem:
        problems.append(template_problem)
    if problems:
        raise ConfigError("; ".join(problems))


def _resolve_env_var(value: Any, env_var_name: str | None = None) -> Any:
    """Resolve environment variable if value starts with $."""
    if isinstance(value, str) and value.startswith("$"):
        env_name = env_var_name or value[1:]
        return os.getenv(env_name, value)
    return value


def build_process(raw: dict[str, Any]) -> ProcessConfig:
    active = _resolve_env_var(raw.get("active", ""))
    process = ProcessConfig(
        active_milestone=str(active or ""),
        mode=str(raw.get("mode", MilestoneMode.DEV.value)),
        warning_interval=parse_duration(
            raw.get("warning_interval", DEFAULT_WARNING_INTERVAL), "warning_interval"
        ),
        label_grace_period=parse_duration(
            raw.get("label_grace_period", DEFAULT_LABEL_GRACE_PERIOD), "label_grace_period"
        ),
        approval_grace_period=parse_duration(
            raw.get("approval_grace_period", DEFAULT_APPROVAL_GRACE_PERIOD),
            "approval_grace_period",
        ),
        slush_update_interval=parse_duration(
            raw.get("slush_update_interval", DEFAULT_SLUSH_UPDATE_INTERVAL),
            "slush_update_interval",
        ),
        freeze_update_interval=parse_duration(
            raw.get("freeze_update_interval", DEFAULT_FREEZE_UPDATE_INTERVAL),
            "freeze_update_interval",
        ),
        freeze_date=str(raw.get("freeze_date") or ""),
    )
    validate_process(process)
    return process


def load_config(path: str | Path) -> MaintainerConfig:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Configuration file not found: {p}")
    try:
        raw = cast(dict[str, Any], yaml.safe_load(p.read_text()) or {})
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {p}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration root must be a mapping: {p}")
    gh = cast(dict[str, Any], raw.get("github", {}) or {})
    milestone = cast(dict[str, Any], raw.get("milestone", {}) or {})
    notifications = cast(dict[str, Any], raw.get("notifications", {}) or {})
    logging_config = cast(dict[str, Any], raw.get("logging", {}) or {})
    concurrency_config = cast(dict[str, Any], raw.get("concurrency", {}) or {})
    behavior = cast(dict[str, Any], raw.get("behavior", {}) or {})

    process = build_process(milestone)
    bot_name = str(_resolve_env_var(gh.get("bot_name", "")) or "").strip()
    owner_mention_template = str(
        notifications.get("owner_mention_template", DEFAULT_OWNER_MENTION_TEMPLATE)
    )
    validate_maintainer(bot_name, owner_mention_template)

    return MaintainerConfig(
        source_file=p,
        process=process,
        github_repo=_resolve_env_var(gh.get("repo")),
        bot_name=bot_name,
        owner_mention_template=owner_mention_template,
        logging_json_enabled=bool(logging_config.get("json_enabled", False)),
        logging_level=str(logging_config.get("level", "INFO")),
        concurrency_enabled=bool(concurrency_config.get("enabled", False)),
        concurrency_max_workers=int(concurrency_config.get("max_workers", 4)),
        dry_run_default=bool(behavior.get("dry_run_default", False)),
        extra={k: v for k, v in raw.items() if k not in _KNOWN_SECTIONS},
    )


_KNOWN_SECTIONS = {
    "version",
    "github",
    "milestone",
    "notifications",
    "logging",
    "concurrency",
    "behavior",
}


__all__ = [
    "ConfigError",
    "MaintainerConfig",
    "ProcessConfig",
    "build_process",
    "load_config",
    "owner_mention_problem",
    "parse_duration",
    "update_process",
    "validate_maintainer",
    "validate_process",
]
