"""
API Controller - Thin wrapper around the engine and its collaborators.

Routes call these async methods; each mutating one returns
``{"success": True, ...}`` with the updated authoritative state. Rejections
are raised as CatalogError / ValueError and formatted by the middleware.
"""

import datetime
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from tcp_repeat.core.broadcast import Message, Observer
from tcp_repeat.core.catalog import UploadedFile
from tcp_repeat.core.devices import NetworkInterface
from tcp_repeat.core.engine import CatalogEngine
from tcp_repeat.core.errors import NotFound
from tcp_repeat.core.logging_utils import get_module_logger
from tcp_repeat.core.models import ALL_PLAYLIST
from tcp_repeat.core.preferences import PreferencesStore
from tcp_repeat.core.replay import ReplayTool


EVENT_VERSION = "serverVersion"
EVENT_PREFERENCES = "preferences"
EVENT_REPLAY_AVAILABLE = "replayAvailable"
EVENT_INTERFACES = "networkInterfaces"


class IncomingFile:
    """One file part of a multipart upload, as handed over by the route."""

    def __init__(self, original_name: str, chunks: AsyncIterator[bytes]):
        self.original_name = original_name
        self.chunks = chunks


class APIController:
    """
    API controller providing programmatic access to the capture catalog.

    Holds references to the engine (the only writer of catalog/playlist
    state), the preferences store, the replay tool and the interface list
    enumerated at startup.
    """

    def __init__(
        self,
        engine: CatalogEngine,
        preferences: PreferencesStore,
        replay: ReplayTool,
        interfaces: Sequence[NetworkInterface],
        version: str,
    ):
        self.logger = get_module_logger("APIController")
        self.engine = engine
        self.preferences = preferences
        self.replay = replay
        self.interfaces = list(interfaces)
        self.version = version

    # =========================================================================
    # System
    # =========================================================================

    async def health_check(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "version": self.version,
            "timestamp": datetime.datetime.now().isoformat(),
            "api_version": "v1",
            "observers": len(self.engine.channel),
            "replay_available": self.replay.available,
        }

    async def list_interfaces(self) -> List[Dict[str, Any]]:
        return [nic.to_dict() for nic in self.interfaces]

    # =========================================================================
    # Preferences
    # =========================================================================

    async def get_preferences(self) -> Dict[str, Any]:
        return self.preferences.snapshot()

    async def set_preferences(self, prefs: Any) -> Dict[str, Any]:
        updated = await self.preferences.replace(prefs)
        await self.engine.publish((EVENT_PREFERENCES, updated))
        return {"success": True, "preferences": updated}

    # =========================================================================
    # Playlists
    # =========================================================================

    async def list_playlists(self) -> List[Dict[str, Any]]:
        return self.engine.playlists_snapshot()

    async def create_playlist(self, name: Any, settings: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        playlist = await self.engine.create_playlist(name, settings)
        return {
            "success": True,
            "playlist": playlist.to_dict(),
            "playlists": self.engine.playlists_snapshot(),
        }

    async def replace_playlist(self, name: str, body: Any) -> Dict[str, Any]:
        playlist = await self.engine.replace_playlist(name, body)
        return {
            "success": True,
            "playlist": playlist.to_dict(),
            "playlists": self.engine.playlists_snapshot(),
        }

    async def update_playlist_settings(self, name: str, settings: Any) -> Dict[str, Any]:
        playlist = await self.engine.update_playlist_settings(name, settings)
        return {
            "success": True,
            "playlist": playlist.to_dict(),
            "playlists": self.engine.playlists_snapshot(),
        }

    async def rename_playlist(self, name: str, new_name: Any) -> Dict[str, Any]:
        playlist = await self.engine.rename_playlist(name, new_name)
        return {
            "success": True,
            "playlist": playlist.to_dict(),
            "playlists": self.engine.playlists_snapshot(),
        }

    async def delete_playlist(self, name: str) -> Dict[str, Any]:
        await self.engine.delete_playlist(name)
        return {"success": True, "playlists": self.engine.playlists_snapshot()}

    async def play_playlist(self, name: str) -> Dict[str, Any]:
        settings, files = self.engine.replay_plan(name)
        pid = await self.replay.play(name, settings, files)
        return {"success": True, "playlist": name, "pid": pid}

    # =========================================================================
    # Captures
    # =========================================================================

    async def list_captures(self) -> List[Dict[str, Any]]:
        return self.engine.captures_snapshot()

    async def upload_captures(self, files: AsyncIterator[IncomingFile], target: Optional[str] = None) -> Dict[str, Any]:
        """
        Store an upload batch on disk, then ingest it in one engine call.

        Observers see nothing until every file is written. If any write
        fails, the files already written are discarded and nothing is
        ingested.
        """
        if target and target != ALL_PLAYLIST and target not in self.engine.playlists:
            raise NotFound(f"Playlist '{target}' not found", {"name": target})

        store = self.engine.files
        uploads: List[UploadedFile] = []
        try:
            async for incoming in files:
                storage_name = store.new_storage_name()
                size = await store.write_stream(storage_name, incoming.chunks)
                uploads.append(UploadedFile(storage_name, incoming.original_name, size))
        except BaseException:
            await store.discard(u.storage_filename for u in uploads)
            raise

        if not uploads:
            raise ValueError("No files were uploaded")

        captures, appended = await self.engine.ingest(uploads, target)
        return {
            "success": True,
            "captures": [c.to_dict() for c in captures],
            "playlist": target if appended else None,
        }

    async def delete_captures(self, ids: Any) -> Dict[str, Any]:
        if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
            raise ValueError("Request body must be a JSON array of capture ids")
        result = await self.engine.delete_captures(ids)
        return {"success": True, **result}

    def capture_file(self, capture_id: str):
        """(path, original name) of a capture's backing file."""
        capture = self.engine.catalog.get(capture_id)
        return self.engine.files.existing_path(capture.filename), capture.original_name

    # =========================================================================
    # Observers
    # =========================================================================

    def onboarding_preamble(self) -> List[Message]:
        return [
            (EVENT_VERSION, self.version),
            (EVENT_PREFERENCES, self.preferences.snapshot()),
            (EVENT_REPLAY_AVAILABLE, self.replay.available),
            (EVENT_INTERFACES, [nic.to_dict() for nic in self.interfaces]),
        ]

    async def attach_observer(self, observer: Observer) -> bool:
        return await self.engine.attach_observer(observer, self.onboarding_preamble)

    def detach_observer(self, observer: Observer) -> None:
        self.engine.detach_observer(observer)
