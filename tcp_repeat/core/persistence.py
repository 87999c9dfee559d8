"""
Persistence Gateway - JSON files for the capture catalog and playlists.

Persistence Rules:
1. ``pcaps.json`` - the catalog, as a list of capture records
2. ``playlists.json`` - playlists without ``count``, All without ``members``
   (both are re-derived on load)
3. Writes are atomic: temp file in the same directory, fsync, ``os.replace``
4. A write failure is logged; in-memory state stays authoritative and is
   written again on the next mutation
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, List, Optional

from tcp_repeat.core.logging_utils import get_module_logger
from tcp_repeat.core.models import Capture, Playlist
from tcp_repeat.core.paths import DataPaths


class PersistenceGateway:
    """Load-at-startup / save-on-mutation for catalog and playlists."""

    def __init__(self, paths: DataPaths):
        self.logger = get_module_logger("Persistence")
        self.paths = paths
        self._write_lock = asyncio.Lock()

    # =========================================================================
    # Loading
    # =========================================================================

    def _read_json(self, path: Path) -> Optional[Any]:
        if not path.exists():
            self.logger.info("LOAD: %s not found - starting empty", path)
            return None
        try:
            with open(path, "r", encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, ValueError) as e:
            self.logger.error("LOAD: Could not read %s: %s", path, e)
            return None

    def load_catalog(self) -> List[Capture]:
        data = self._read_json(self.paths.catalog)
        if not isinstance(data, list):
            return []

        captures: List[Capture] = []
        for record in data:
            try:
                captures.append(Capture.from_dict(record))
            except (TypeError, ValueError) as e:
                self.logger.warning("LOAD: Skipping bad capture record %r: %s", record, e)
        self.logger.info("LOAD: %d captures", len(captures))
        return captures

    def load_playlists(self) -> List[Playlist]:
        data = self._read_json(self.paths.playlists)
        if not isinstance(data, list):
            return []

        playlists: List[Playlist] = []
        for record in data:
            try:
                playlists.append(Playlist.from_dict(record))
            except (TypeError, ValueError) as e:
                self.logger.warning("LOAD: Skipping bad playlist record %r: %s", record, e)
        self.logger.info("LOAD: %d playlists", len(playlists))
        return playlists

    # =========================================================================
    # Saving
    # =========================================================================

    async def save_catalog(self, captures: Iterable[Capture]) -> bool:
        records = [c.to_dict() for c in captures]
        return await self._write(self.paths.catalog, records, "catalog")

    async def save_playlists(self, playlists: Iterable[Playlist]) -> bool:
        records = [p.to_record() for p in playlists]
        return await self._write(self.paths.playlists, records, "playlists")

    async def _write(self, path: Path, data: Any, label: str) -> bool:
        async with self._write_lock:
            try:
                await asyncio.to_thread(self._write_atomic, path, data)
            except (OSError, TypeError, ValueError) as e:
                self.logger.error("PERSIST FAILED: %s -> %s: %s", label, path, e)
                return False
        self.logger.debug("PERSIST: %s (%d records)", label, len(data))
        return True

    @staticmethod
    def _write_atomic(path: Path, data: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path: Optional[Path] = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                dir=str(path.parent),
                prefix=f".{path.name}.",
                delete=False,
                encoding="utf-8",
            ) as tmp:
                tmp_path = Path(tmp.name)
                json.dump(data, tmp, indent=2)
                tmp.flush()
                os.fsync(tmp.fileno())

            os.replace(tmp_path, path)
            tmp_path = None
        finally:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
