"""Unit test fixtures for isolated, fast test execution.

Every fixture works inside pytest's ``tmp_path``:
- ``captures_dir`` / ``etc_dir``: the captures directory and the etc directory
- ``engine``: a CatalogEngine wired to real stores with deterministic ids
- ``FakeObserver``: records the frames a WebSocket observer would receive
"""

from __future__ import annotations

import asyncio
import itertools
import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pytest

from tcp_repeat.core.catalog import CatalogStore, UploadedFile
from tcp_repeat.core.engine import CatalogEngine
from tcp_repeat.core.paths import DataPaths
from tcp_repeat.core.persistence import PersistenceGateway
from tcp_repeat.core.playlists import PlaylistStore
from tcp_repeat.core.storage import CaptureFileStore


class FakeObserver:
    """Stands in for an aiohttp WebSocketResponse."""

    def __init__(self, fail: bool = False, delay: float = 0.0):
        self.fail = fail
        self.delay = delay
        self.closed = False
        self.frames: List[str] = []

    async def send_str(self, data: str) -> None:
        if self.fail:
            raise ConnectionResetError("peer went away")
        if self.delay:
            await asyncio.sleep(self.delay)
        self.frames.append(data)

    async def close(self) -> None:
        self.closed = True

    @property
    def messages(self) -> List[Tuple[str, Any]]:
        decoded = [json.loads(frame) for frame in self.frames]
        return [(m["event"], m["data"]) for m in decoded]

    @property
    def events(self) -> List[str]:
        return [event for event, _ in self.messages]


def store_upload(directory: Path, original_name: str, payload: bytes = b"\xd4\xc3\xb2\xa1") -> UploadedFile:
    """Write a backing file the way an upload would and describe it."""
    storage_name = CaptureFileStore.new_storage_name()
    (directory / storage_name).write_bytes(payload)
    return UploadedFile(storage_name, original_name, len(payload))


@pytest.fixture
def captures_dir(tmp_path: Path) -> Path:
    path = tmp_path / "pcaps"
    path.mkdir()
    return path


@pytest.fixture
def etc_dir(tmp_path: Path) -> Path:
    path = tmp_path / "etc"
    path.mkdir()
    return path


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"cap-{next(counter)}"


@pytest.fixture
def engine(captures_dir: Path, etc_dir: Path, id_factory) -> CatalogEngine:
    return CatalogEngine(
        CatalogStore(id_factory=id_factory, clock=lambda: 1700000000),
        PlaylistStore(),
        PersistenceGateway(DataPaths(etc_dir)),
        CaptureFileStore(lambda: captures_dir),
        default_interface="eth0",
    )


@pytest.fixture
def read_json():
    def _read(path: Path) -> Any:
        return json.loads(path.read_text(encoding="utf-8"))
    return _read


def members_of(engine: CatalogEngine) -> Dict[str, List[str]]:
    return {p.name: list(p.members) for p in engine.playlists}
