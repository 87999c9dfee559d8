"""Catalog Store - authoritative, ordered list of ingested captures."""

import time
import uuid
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional

from tcp_repeat.core.errors import NotFound
from tcp_repeat.core.models import Capture


@dataclass(frozen=True)
class UploadedFile:
    """What the upload collaborator hands over for each accepted file."""

    storage_filename: str
    original_name: str
    size_bytes: int


class CatalogStore:
    """
    Owns the capture records in insertion order.

    Ids are random UUID4 strings and are the only cross-reference playlists
    use. The store never touches the backing files; that is the engine's job.
    """

    def __init__(
        self,
        captures: Optional[Iterable[Capture]] = None,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        clock: Callable[[], float] = time.time,
    ):
        self._captures: List[Capture] = list(captures or [])
        self._id_factory = id_factory
        self._clock = clock

    def __len__(self) -> int:
        return len(self._captures)

    def __iter__(self) -> Iterator[Capture]:
        return iter(list(self._captures))

    def __contains__(self, capture_id: object) -> bool:
        return any(c.id == capture_id for c in self._captures)

    def _new_id(self) -> str:
        capture_id = self._id_factory()
        while capture_id in self:
            capture_id = self._id_factory()
        return capture_id

    def ingest(self, upload: UploadedFile, ingested_at: Optional[int] = None) -> Capture:
        """Append a new capture for ``upload`` and return it."""
        capture = Capture(
            id=self._new_id(),
            filename=upload.storage_filename,
            original_name=upload.original_name,
            size=int(upload.size_bytes),
            ingested_at=int(self._clock()) if ingested_at is None else ingested_at,
        )
        self._captures.append(capture)
        return capture

    def get(self, capture_id: str) -> Capture:
        for capture in self._captures:
            if capture.id == capture_id:
                return capture
        raise NotFound(f"Capture '{capture_id}' not found", {"id": capture_id})

    def remove(self, capture_id: str) -> Capture:
        """Remove and return the capture; raises NotFound if absent."""
        for index, capture in enumerate(self._captures):
            if capture.id == capture_id:
                return self._captures.pop(index)
        raise NotFound(f"Capture '{capture_id}' not found", {"id": capture_id})

    def list(self) -> List[Capture]:
        """Snapshot in insertion order."""
        return list(self._captures)

    def ids(self) -> List[str]:
        return [c.id for c in self._captures]

    def now(self) -> int:
        return int(self._clock())
