from __future__ import annotations

from datetime import timedelta
from types import SimpleNamespace

import pytest

from milestone_maintainer import runtime
from milestone_maintainer.config import ConfigError, MaintainerConfig, ProcessConfig


def _loader(path: str) -> MaintainerConfig:
    assert path == "config.yml"
    return MaintainerConfig(source_file=None, process=ProcessConfig(active_milestone="v1.8"))


def test_prepare_config_requires_config_attribute() -> None:
    with pytest.raises(AttributeError):
        runtime.prepare_config(SimpleNamespace(cmd="run"))


def test_prepare_config_applies_overrides() -> None:
    args = SimpleNamespace(
        cmd="run",
        config="config.yml",
        repo="owner/repo",
        active_milestone="v1.9",
        mode="slush",
        freeze_date="June 20",
    )
    cfg = runtime.prepare_config(args, loader=_loader)
    assert cfg.github_repo == "owner/repo"
    assert cfg.process.active_milestone == "v1.9"
    assert cfg.process.mode == "slush"
    assert cfg.process.update_interval == timedelta(hours=72)


def test_prepare_config_rejects_invalid_override() -> None:
    args = SimpleNamespace(cmd="run", config="config.yml", mode="slush")
    with pytest.raises(ConfigError, match="freeze_date"):
        runtime.prepare_config(args, loader=_loader)


def test_prepare_config_without_overrides_keeps_process() -> None:
    args = SimpleNamespace(cmd="validate", config="config.yml", repo=None, mode=None)
    cfg = runtime.prepare_config(args, loader=_loader)
    assert cfg.process == ProcessConfig(active_milestone="v1.8")


def test_execute_command_success() -> None:
    assert runtime.execute_command(lambda: 3, SimpleNamespace(), None, "run") == 3
    assert runtime.execute_command(lambda: None, SimpleNamespace(), None, "run") == 0


def test_execute_command_propagates_errors() -> None:
    def boom() -> int:
        raise RuntimeError("kaput")

    with pytest.raises(RuntimeError):
        runtime.execute_command(boom, SimpleNamespace(), None, "run")
