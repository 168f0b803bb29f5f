"""milestone-maintainer CLI.

Subcommands:
  run       -> maintain every open issue in the active milestone (summary JSON)
  check     -> resolve a single issue and print its notification (no mutation)
  validate  -> load and validate the configuration
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any

from .config import ConfigError, MaintainerConfig
from .env_auth import TOKEN_ENV_VARS, load_env_files, resolve_github_token
from .errors import IndeterminateHistoryError, MaintainerError, classify_error
from .github_rest import GitHubRestClient
from .logging import configure_logging
from .maintainer import MilestoneMaintainer
from .models import MilestoneMode
from .runtime import execute_command, prepare_config
from .tracker import GitHubIssueTracker, IssueTracker, TrackerHistory

CONFIG_DEFAULT = "milestone_maintainer.config.yaml"
REPO_HELP = "Override target repository (owner/repo)"
_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=CONFIG_DEFAULT)
    parser.add_argument("--repo", help=REPO_HELP)
    parser.add_argument("--token", help="GitHub token (env: " + ", ".join(TOKEN_ENV_VARS) + ")")
    parser.add_argument("--env-file", help="Load variables from this .env file (default: .env)")
    parser.add_argument("--active-milestone", help="Override the active milestone title")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in MilestoneMode],
        help="Override the milestone mode",
    )
    parser.add_argument("--freeze-date", help="Override the code freeze date shown in notices")


def _build_parser() -> argparse.ArgumentParser:
    """Construct top-level CLI parser with subcommands."""
    p = _FormatterArgumentParser(
        prog="milestone-maintainer",
        description="Keep GitHub issues in the active milestone on track",
    )
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational logging (env: MILESTONE_MAINTAINER_QUIET=1)",
    )
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    pr = sub.add_parser("run", help="Maintain all open issues in the active milestone")
    _add_common(pr)
    pr.add_argument("--dry-run", action="store_true", help="Log mutations without sending them")
    pr.add_argument("--summary-json", help="Write the run summary to this path")

    pc = sub.add_parser("check", help="Resolve one issue and print its notification")
    _add_common(pc)
    pc.add_argument("--issue", type=int, required=True, help="Issue number")

    pv = sub.add_parser("validate", help="Validate configuration")
    _add_common(pv)
    return p


def _resolve_token(args: argparse.Namespace) -> str | None:
    load_env_files(getattr(args, "env_file", None))
    return resolve_github_token(getattr(args, "token", None))


def _build_tracker(
    cfg: MaintainerConfig, args: argparse.Namespace, *, dry_run: bool
) -> IssueTracker:
    token = _resolve_token(args)
    if not token:
        raise MaintainerError("GitHub token not found; set " + " or ".join(TOKEN_ENV_VARS))
    if not cfg.github_repo:
        raise MaintainerError("github.repo is not configured (use --repo)")
    client = GitHubRestClient(token=token, repo=cfg.github_repo)
    return GitHubIssueTracker(client, dry_run=dry_run)


def _write_summary_json(path: str | None, summary: dict[str, Any]) -> None:
    if not path:
        return
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(summary, indent=2) + "\n")
    print(f"[run] summary -> {target}")


def _cmd_run(cfg: MaintainerConfig, args: argparse.Namespace) -> int:
    dry_run = bool(args.dry_run or cfg.dry_run_default)
    tracker = _build_tracker(cfg, args, dry_run=dry_run)
    maintainer = MilestoneMaintainer.from_config(cfg, tracker)
    max_workers = cfg.concurrency_max_workers if cfg.concurrency_enabled else 1
    summary = maintainer.run(max_workers=max_workers)
    summary["dry_run"] = dry_run
    print("[run] totals", json.dumps(summary["totals"]))
    _write_summary_json(args.summary_json, summary)
    return 1 if summary["totals"]["failed"] else 0


def _cmd_check(cfg: MaintainerConfig, args: argparse.Namespace) -> int:
    tracker = _build_tracker(cfg, args, dry_run=True)
    maintainer = MilestoneMaintainer.from_config(cfg, tracker)
    try:
        item = tracker.get_issue(args.issue)
        if maintainer.should_ignore(item):
            print(f"[check] #{item.number} is not an open issue in {cfg.process.active_milestone}")
            return 0
        history = TrackerHistory(tracker, item, cfg.bot_name)
        change = maintainer.issue_change(item, history, now=maintainer.now())
    except IndeterminateHistoryError as exc:
        print(f"[check] {classify_error(exc).message}", file=sys.stderr)
        return 1
    print(f"[check] #{item.number} state={change.state.value} label={change.label or '-'}")
    if change.remove_from_milestone:
        print("[check] would remove from milestone")
    print(change.notification.format())
    return 0


def _cmd_validate(cfg: MaintainerConfig) -> int:
    if not cfg.github_repo:
        print("[validate] github.repo is not set (use --repo)", file=sys.stderr)
        return 1
    process = cfg.process
    print(f"[validate] milestone={process.active_milestone} mode={process.mode}")
    print("[validate] ok")
    return 0


def _build_handlers(args: argparse.Namespace, cfg: MaintainerConfig) -> dict[str, Any]:
    return {
        "run": lambda: _cmd_run(cfg, args),
        "check": lambda: _cmd_check(cfg, args),
        "validate": lambda: _cmd_validate(cfg),
    }


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "quiet", False) and os.environ.get("MILESTONE_MAINTAINER_QUIET") == "1":
        args.quiet = True
    try:
        cfg = prepare_config(args)
    except ConfigError as exc:
        print(f"[{args.cmd}] {exc}", file=sys.stderr)
        return 2
    configure_logging(
        json_logging=cfg.logging_json_enabled,
        level="WARNING" if args.quiet else cfg.logging_level,
    )
    handlers = _build_handlers(args, cfg)
    handler = handlers.get(args.cmd)
    if handler is None:  # pragma: no cover - argparse enforces valid choices
        parser.print_help()
        return 1
    try:
        return execute_command(handler, args, cfg, args.cmd)
    except ConfigError as exc:
        print(f"[{args.cmd}] {exc}", file=sys.stderr)
        return 2
    except MaintainerError as exc:
        print(f"[{args.cmd}] {classify_error(exc).message}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
