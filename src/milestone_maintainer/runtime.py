"""Runtime helpers for milestone-maintainer CLI orchestration."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any, Protocol

from .config import MaintainerConfig, load_config, update_process
from .logging import get_logger

# argparse attribute -> ProcessConfig option
_PROCESS_OVERRIDES = {
    "active_milestone": "active_milestone",
    "mode": "mode",
    "freeze_date": "freeze_date",
}


class _HandlerCallable(Protocol):
    def __call__(self) -> Any: ...


def prepare_config(
    args: Any, *, loader: Callable[[str], MaintainerConfig] = load_config
) -> MaintainerConfig:
    """Load MaintainerConfig and apply command line overrides from ``args``."""
    if not hasattr(args, "config"):
        raise AttributeError("Command namespace is missing 'config' attribute")
    cfg = loader(args.config)
    repo_override = getattr(args, "repo", None)
    if repo_override:
        cfg.github_repo = repo_override
    changes = {
        option: getattr(args, attr)
        for attr, option in _PROCESS_OVERRIDES.items()
        if getattr(args, attr, None) is not None
    }
    if changes:
        cfg.process = update_process(cfg.process, **changes)
    return cfg


def execute_command(
    handler: _HandlerCallable, args: Any, cfg: MaintainerConfig | None, command: str
) -> int:
    """Execute a command handler, logging its exit code and duration."""
    log = get_logger()
    start = time.monotonic()
    exit_code = 1
    try:
        result = handler()
        exit_code = int(result) if result is not None else 0
    except SystemExit as exc:  # pragma: no cover - allow propagation
        exit_code = int(exc.code or 0)
        raise
    except Exception as exc:
        exit_code = 1
        log.log_error(f"command {command} failed", error=str(exc), command=command)
        raise
    finally:
        duration_ms = max(0.0, time.monotonic() - start) * 1000
        log.log_performance(f"command_{command}", duration_ms, exit_code=exit_code)
    return exit_code


__all__ = ["execute_command", "prepare_config"]
