"""milestone-maintainer - keeps issues in the active GitHub milestone on track.

High-level public API:

from milestone_maintainer import MilestoneMaintainer, load_config
from milestone_maintainer.github_rest import GitHubRestClient
from milestone_maintainer.tracker import GitHubIssueTracker

cfg = load_config('milestone_maintainer.config.yaml')
tracker = GitHubIssueTracker(GitHubRestClient(token=token, repo=cfg.github_repo), dry_run=True)
summary = MilestoneMaintainer.from_config(cfg, tracker).run()
print(summary['totals'])

The resolution step is pure: ``resolve(item, process, history, now=...)``
returns the lifecycle state and message for one issue without touching the
tracker.
"""

from __future__ import annotations

from .config import ConfigError, MaintainerConfig, ProcessConfig, load_config
from .maintainer import MilestoneMaintainer, MungeResult
from .models import IssueChange, LifecycleState, MilestoneMode, TrackedItem
from .notifications import Notification, parse_notification
from .resolver import Resolution, resolve

# Sync manually with pyproject
__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "IssueChange",
    "LifecycleState",
    "MaintainerConfig",
    "MilestoneMaintainer",
    "MilestoneMode",
    "MungeResult",
    "Notification",
    "ProcessConfig",
    "Resolution",
    "TrackedItem",
    "__version__",
    "load_config",
    "parse_notification",
    "resolve",
]
