"""Centralized path constants for the tcp-repeat server."""

from __future__ import annotations

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
PACKAGE_ROOT = PROJECT_ROOT / "tcp_repeat"

# Server configuration (key = value)
CONFIG_PATH = PROJECT_ROOT / "config.txt"

# Preferences and data files live together in the etc directory
_ETC_ENV = os.environ.get("TCP_REPEAT_ETC_DIR")
DEFAULT_ETC_DIR = Path(_ETC_ENV).expanduser() if _ETC_ENV else Path("etc")

PREFERENCES_FILENAME = "tcp-repeat-settings.json"
CATALOG_FILENAME = "pcaps.json"
PLAYLISTS_FILENAME = "playlists.json"

LOGS_DIR = PROJECT_ROOT / "logs"
SERVER_LOG_FILE = LOGS_DIR / "tcp-repeat.log"


class DataPaths:
    """Resolved locations of the files kept under one etc directory."""

    def __init__(self, etc_dir: Path | str = DEFAULT_ETC_DIR):
        self.etc_dir = Path(etc_dir)

    @property
    def preferences(self) -> Path:
        return self.etc_dir / PREFERENCES_FILENAME

    @property
    def catalog(self) -> Path:
        return self.etc_dir / CATALOG_FILENAME

    @property
    def playlists(self) -> Path:
        return self.etc_dir / PLAYLISTS_FILENAME

    def __repr__(self) -> str:
        return f"DataPaths({str(self.etc_dir)!r})"


__all__ = [
    "PROJECT_ROOT",
    "PACKAGE_ROOT",
    "CONFIG_PATH",
    "DEFAULT_ETC_DIR",
    "PREFERENCES_FILENAME",
    "CATALOG_FILENAME",
    "PLAYLISTS_FILENAME",
    "LOGS_DIR",
    "SERVER_LOG_FILE",
    "DataPaths",
]
