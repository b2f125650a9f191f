"""Configuration management for the event budget planner.

This module centralizes all configuration values including paths,
limits, and environment variable overrides.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

# Base project root - assumes this file is in event_budget/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("EVENTBUDGET_DATA_DIR", _PROJECT_ROOT / "data"))
SNAPSHOTS_DIR = DATA_DIR / "snapshots"

# Remote snapshot store.  Empty means snapshots are kept on the local disk.
API_BASE = os.getenv("EVENTBUDGET_API_BASE", "").rstrip("/")
HTTP_TIMEOUT_S = float(os.getenv("EVENTBUDGET_HTTP_TIMEOUT", "10"))

# Upper bound applied whenever a repeated-group count is parsed.
MAX_REPEAT_COUNT = int(os.getenv("EVENTBUDGET_MAX_REPEAT", "100"))

LOG_LEVEL = os.getenv("EVENTBUDGET_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, SNAPSHOTS_DIR]:
        directory.mkdir(parents=True, exist_ok=True)


def configure_logging(level: Optional[str] = None) -> None:
    """Install the root logging handler used by the app and scripts."""
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )
