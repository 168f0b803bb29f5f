from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from milestone_maintainer.config import (
    ConfigError,
    ProcessConfig,
    build_process,
    load_config,
    parse_duration,
    update_process,
    validate_process,
)

CONFIG = """
version: 1
github:
  repo: $TEST_MM_REPO
  bot_name: release-bot
milestone:
  active: v1.8
  mode: slush
  freeze_date: June 20
  warning_interval: 12h
  approval_grace_period: 7d
notifications:
  owner_mention_template: "@acme/{owner}-team"
logging:
  json_enabled: true
  level: DEBUG
concurrency:
  enabled: true
  max_workers: 8
behavior:
  dry_run_default: true
custom:
  keep: me
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "milestone_maintainer.config.yaml"
    path.write_text(text)
    return path


def test_load_config_full(tmp_path, monkeypatch):
    monkeypatch.setenv("TEST_MM_REPO", "acme/widgets")
    cfg = load_config(_write(tmp_path, CONFIG))
    assert cfg.github_repo == "acme/widgets"
    assert cfg.bot_name == "release-bot"
    assert cfg.owner_mention_template == "@acme/{owner}-team"
    assert cfg.logging_json_enabled is True
    assert cfg.logging_level == "DEBUG"
    assert cfg.concurrency_enabled is True
    assert cfg.concurrency_max_workers == 8
    assert cfg.dry_run_default is True
    assert cfg.extra == {"custom": {"keep": "me"}}
    process = cfg.process
    assert process.mode == "slush"
    assert process.warning_interval == timedelta(hours=12)
    assert process.approval_grace_period == timedelta(days=7)
    assert process.label_grace_period == timedelta(hours=72)
    assert process.update_interval == timedelta(hours=72)


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "nope.yaml")


def test_load_config_invalid_yaml(tmp_path):
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(_write(tmp_path, "milestone: [unclosed"))


def test_load_config_requires_bot_name(tmp_path):
    with pytest.raises(ConfigError, match="bot_name must be supplied"):
        load_config(_write(tmp_path, "github:\n  repo: acme/widgets\nmilestone:\n  active: v1.8\n"))


def test_load_config_unset_bot_name_variable(tmp_path, monkeypatch):
    monkeypatch.setenv("TEST_MM_BOT", "")
    text = "github:\n  bot_name: $TEST_MM_BOT\nmilestone:\n  active: v1.8\n"
    with pytest.raises(ConfigError, match="bot_name must be supplied"):
        load_config(_write(tmp_path, text))


@pytest.mark.parametrize("template", ["@acme/sig-{sig}-bugs", "@acme/{}", "@acme/{owner.name}"])
def test_load_config_rejects_bad_owner_mention_template(tmp_path, template):
    text = (
        "github:\n  bot_name: release-bot\n"
        "milestone:\n  active: v1.8\n"
        f"notifications:\n  owner_mention_template: \"{template}\"\n"
    )
    with pytest.raises(ConfigError, match="owner_mention_template"):
        load_config(_write(tmp_path, text))


def test_load_config_requires_active_milestone(tmp_path):
    with pytest.raises(ConfigError, match="active_milestone must be supplied"):
        load_config(_write(tmp_path, "milestone: {}\n"))


@pytest.mark.parametrize(
    "value, expected",
    [
        ("72h", timedelta(hours=72)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("7d", timedelta(days=7)),
        ("90", timedelta(seconds=90)),
        (3600, timedelta(hours=1)),
        ("-5m", timedelta(minutes=-5)),
        ("250ms", timedelta(milliseconds=250)),
    ],
)
def test_parse_duration(value, expected):
    assert parse_duration(value) == expected


@pytest.mark.parametrize("value", ["", "abc", "5x", "1h junk", True])
def test_parse_duration_rejects(value):
    with pytest.raises(ConfigError):
        parse_duration(value, "warning_interval")


def test_validate_collects_every_problem():
    process = ProcessConfig(
        active_milestone="",
        mode="party",
        warning_interval=timedelta(0),
    )
    with pytest.raises(ConfigError) as excinfo:
        validate_process(process)
    message = str(excinfo.value)
    assert "active_milestone must be supplied" in message
    assert "mode must be one of ['dev', 'freeze', 'slush']" in message
    assert "warning_interval must be greater than zero" in message


def test_slush_requires_freeze_date():
    with pytest.raises(ConfigError, match="freeze_date must be supplied"):
        build_process({"active": "v1.8", "mode": "slush"})


def test_update_interval_by_mode():
    assert ProcessConfig(active_milestone="v").update_interval == timedelta(0)
    assert ProcessConfig(active_milestone="v", mode="freeze").update_interval == timedelta(hours=24)


def test_update_process_validates_changed_options_only():
    process = ProcessConfig(active_milestone="v1.8")
    updated = update_process(process, warning_interval="2h", active_milestone="v1.9")
    assert updated.warning_interval == timedelta(hours=2)
    assert updated.active_milestone == "v1.9"
    assert process.active_milestone == "v1.8"

    with pytest.raises(ConfigError, match="label_grace_period must be greater than zero"):
        update_process(process, label_grace_period="0s")


def test_update_process_mode_change_rechecks_freeze_date():
    process = ProcessConfig(active_milestone="v1.8")
    with pytest.raises(ConfigError, match="freeze_date"):
        update_process(process, mode="slush")
    assert update_process(process, mode="slush", freeze_date="June 20").mode == "slush"


def test_update_process_rejects_unknown_option():
    with pytest.raises(ConfigError, match="unknown option"):
        update_process(ProcessConfig(active_milestone="v1.8"), colour="blue")
