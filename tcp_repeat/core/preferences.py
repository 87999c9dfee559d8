"""Preferences Store - the JSON preferences file shared with clients."""

import asyncio
import copy
import json
import os
from pathlib import Path
from typing import Any, Dict

import aiofiles

from tcp_repeat.core.errors import StartupError, StorageFailure
from tcp_repeat.core.logging_utils import get_module_logger


REQUIRED_KEYS = ("pathToTcpreplay", "pcapsDir")


def check_captures_dir(directory: Path) -> None:
    """Raise ValueError unless ``directory`` exists and is writable."""
    if not directory.is_dir():
        raise ValueError(f"Captures directory not found: {directory}")
    if not os.access(directory, os.W_OK):
        raise ValueError(f"Captures directory is not writable by the current user: {directory}")


def validate_preferences(prefs: Any) -> Dict[str, Any]:
    if not isinstance(prefs, dict):
        raise ValueError("Preferences must be a JSON object")
    for key in REQUIRED_KEYS:
        if key not in prefs:
            raise ValueError(f"'{key}' was not found in preferences")
    return prefs


class PreferencesStore:
    """
    Holds the preferences dict and writes it back on change.

    ``load`` is a startup precondition: the file must exist and parse, and
    ``pcapsDir`` must name a writable directory. Any failure raises
    StartupError, which the entry point turns into exit status 1.
    """

    def __init__(self, path: Path):
        self.logger = get_module_logger("Preferences")
        self.path = Path(path)
        self._prefs: Dict[str, Any] = {}
        self._lock = asyncio.Lock()

    def load(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                prefs = json.load(fh)
        except OSError as e:
            raise StartupError(f"Could not open preferences file {self.path}: {e}") from e
        except ValueError as e:
            raise StartupError(f"Preferences file {self.path} is not valid JSON: {e}") from e

        if not isinstance(prefs, dict) or "pcapsDir" not in prefs:
            raise StartupError("Could not find pcapsDir in preferences")
        try:
            check_captures_dir(Path(prefs["pcapsDir"]))
        except ValueError as e:
            raise StartupError(str(e)) from e

        self._prefs = prefs
        self.logger.debug("preferences: %s", prefs)
        return self.snapshot()

    def snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy(self._prefs)

    def get(self, key: str, default: Any = None) -> Any:
        return self._prefs.get(key, default)

    @property
    def captures_dir(self) -> Path:
        return Path(self._prefs.get("pcapsDir", "."))

    @property
    def replay_tool_path(self) -> str:
        return str(self._prefs.get("pathToTcpreplay", ""))

    async def replace(self, prefs: Any) -> Dict[str, Any]:
        """Validate, store and persist a full preferences object."""
        prefs = validate_preferences(prefs)
        await asyncio.to_thread(check_captures_dir, Path(prefs["pcapsDir"]))

        async with self._lock:
            try:
                async with aiofiles.open(self.path, "w", encoding="utf-8") as fh:
                    await fh.write(json.dumps(prefs, indent=2))
            except OSError as e:
                self.logger.error("Could not write preferences file %s: %s", self.path, e)
                raise StorageFailure(f"Could not write preferences file {self.path}") from e
            self._prefs = copy.deepcopy(prefs)

        self.logger.info("Preferences updated")
        return self.snapshot()
