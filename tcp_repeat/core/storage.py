"""
Capture File Store - backing files for catalog entries.

Files live flat in the preferences' ``pcapsDir`` under random hex names.
Deletes are two-phase: every file of a batch is first staged (renamed to a
hidden ``.deleting`` name), and only unlinked once the catalog mutation has
been committed. A staging failure restores what was already staged, so a
failed batch leaves both the directory and the catalog untouched.
"""

import asyncio
import os
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterable, Callable, Iterable, List, Optional

import aiofiles

from tcp_repeat.core.errors import NotFound, StorageFailure
from tcp_repeat.core.logging_utils import get_module_logger


logger = get_module_logger("CaptureFileStore")

STAGED_SUFFIX = ".deleting"


@dataclass
class StagedRemoval:
    """A backing file moved aside pending commit."""

    original: Path
    staged: Path


class CaptureFileStore:
    """Reads, writes and removes capture files in one directory."""

    def __init__(self, directory: Callable[[], Path]):
        """
        Args:
            directory: Callable returning the current captures directory.
                Resolved on every call so a preferences change takes effect
                for the next upload or delete.
        """
        self._directory = directory

    @property
    def directory(self) -> Path:
        return Path(self._directory())

    @staticmethod
    def new_storage_name() -> str:
        return secrets.token_hex(16)

    def path_for(self, filename: str) -> Path:
        """Resolve a storage filename; rejects anything that is not a bare name."""
        if not filename or Path(filename).name != filename or filename in (".", ".."):
            raise ValueError(f"Invalid storage filename: {filename!r}")
        return self.directory / filename

    def existing_path(self, filename: str) -> Path:
        path = self.path_for(filename)
        if not path.is_file():
            raise NotFound(f"Capture file '{filename}' is missing", {"filename": filename})
        return path

    # ------------------------------------------------------------------
    # Writes

    async def write_stream(self, filename: str, chunks: AsyncIterable[bytes]) -> int:
        """Write ``chunks`` to a new file; returns the byte count."""
        path = self.path_for(filename)
        size = 0
        try:
            async with aiofiles.open(path, "wb") as fh:
                async for chunk in chunks:
                    await fh.write(chunk)
                    size += len(chunk)
        except OSError as e:
            await self.discard([filename])
            raise StorageFailure(f"Could not write capture file: {e}", {"filename": filename}) from e
        return size

    async def discard(self, filenames: Iterable[str]) -> None:
        """Best-effort removal of files from an upload that did not commit."""
        for filename in filenames:
            try:
                await asyncio.to_thread(self.path_for(filename).unlink, missing_ok=True)
            except OSError as e:
                logger.warning("Could not discard partial upload %s: %s", filename, e)

    # ------------------------------------------------------------------
    # Two-phase delete

    def _stage_one(self, filename: str) -> Optional[StagedRemoval]:
        original = self.path_for(filename)
        staged = original.with_name(f".{original.name}{STAGED_SUFFIX}")
        try:
            os.replace(original, staged)
        except FileNotFoundError:
            logger.warning("Capture file %s was not found; removing the record anyway", filename)
            return None
        return StagedRemoval(original=original, staged=staged)

    def stage_removals(self, filenames: Iterable[str]) -> List[StagedRemoval]:
        """Stage every file or none.

        Missing files are skipped (non-fatal). An invalid storage filename or
        any other OS error restores the files staged so far and raises
        StorageFailure.
        """
        staged: List[StagedRemoval] = []
        for filename in filenames:
            try:
                removal = self._stage_one(filename)
            except (OSError, ValueError) as e:
                logger.error("Could not remove capture file %s: %s", filename, e)
                self.restore(staged)
                raise StorageFailure(
                    f"Could not remove capture file '{filename}': {getattr(e, 'strerror', None) or e}",
                    {"filename": filename},
                ) from e
            if removal is not None:
                staged.append(removal)
        return staged

    def restore(self, staged: Iterable[StagedRemoval]) -> None:
        for removal in staged:
            try:
                os.replace(removal.staged, removal.original)
            except OSError as e:
                logger.error("Could not restore %s after failed delete: %s", removal.original, e)

    def purge(self, staged: Iterable[StagedRemoval]) -> None:
        for removal in staged:
            try:
                removal.staged.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not unlink staged file %s: %s", removal.staged, e)
