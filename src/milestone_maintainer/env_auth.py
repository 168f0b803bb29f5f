"""GitHub token discovery from the environment and ``.env`` files."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from .logging import get_logger

TOKEN_ENV_VARS = ("MILESTONE_MAINTAINER_GITHUB_TOKEN", "GITHUB_TOKEN", "GH_TOKEN")
DOTENV_LOCATIONS = (".env", ".env.local")


def load_env_files(dotenv_path: str | Path | None = None) -> Path | None:
    """Load the first existing ``.env`` file; variables already set win."""
    candidates = [Path(dotenv_path)] if dotenv_path else [Path(p) for p in DOTENV_LOCATIONS]
    for env_file in candidates:
        if env_file.is_file():
            load_dotenv(env_file, override=False)
            get_logger().debug(f"Loaded environment variables from {env_file}")
            return env_file
    return None


def resolve_github_token(explicit: str | None = None) -> str | None:
    if explicit and explicit.strip():
        return explicit.strip()
    for name in TOKEN_ENV_VARS:
        token = os.environ.get(name)
        if token and token.strip():
            return token.strip()
    return None


__all__ = ["DOTENV_LOCATIONS", "TOKEN_ENV_VARS", "load_env_files", "resolve_github_token"]
