"""Pytest configuration for milestone-maintainer tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install (`pip install -e .`).
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    # Prepend so the local package wins over any installed copy
    sys.path.insert(0, str(SRC))

# Never pick up a real token from the developer's shell
for _name in ("MILESTONE_MAINTAINER_GITHUB_TOKEN", "GITHUB_TOKEN", "GH_TOKEN"):
    os.environ.pop(_name, None)
