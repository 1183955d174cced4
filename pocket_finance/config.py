"""Configuration management for the pocket finance tracker.

This module centralizes all configuration values including paths,
the storage backend, and environment variable overrides.
"""

from __future__ import annotations

import os
from pathlib import Path

# Base project root - assumes this file is in pocket_finance/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("POCKET_FINANCE_DATA_DIR", _PROJECT_ROOT / "data"))
EXPORTS_DIR = Path(os.getenv("POCKET_FINANCE_EXPORTS_DIR", DATA_DIR / "exports"))

# Storage backend: json, sqlite or memory
STORE_BACKEND = os.getenv("POCKET_FINANCE_STORE_BACKEND", "json").strip().lower()

_DEFAULT_STATE_FILE = "ledger.db" if STORE_BACKEND == "sqlite" else "ledger.json"
STATE_PATH = Path(
    os.getenv("POCKET_FINANCE_STATE_PATH", DATA_DIR / _DEFAULT_STATE_FILE)
).resolve()

LOG_LEVEL = os.getenv("POCKET_FINANCE_LOG_LEVEL", "INFO")


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, EXPORTS_DIR, STATE_PATH.parent]:
        directory.mkdir(parents=True, exist_ok=True)


def get_state_path() -> str:
    """Get the ledger state path as a string."""
    return str(STATE_PATH)
