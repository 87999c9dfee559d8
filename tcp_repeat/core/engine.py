"""
Consistency Engine - keeps the catalog and the playlists coherent.

Every mutation runs under one asyncio.Lock and in this order:

    catalog mutation -> playlist cleanup -> All re-derivation
        -> persistence write -> broadcast

so observers only ever receive fully settled state, and a batch either
applies as a whole or not at all.
"""

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from tcp_repeat.core.broadcast import BroadcastChannel, Message, Observer
from tcp_repeat.core.catalog import CatalogStore, UploadedFile
from tcp_repeat.core.logging_utils import get_module_logger
from tcp_repeat.core.models import ALL_PLAYLIST, Capture, Playlist, PlaylistSettings
from tcp_repeat.core.persistence import PersistenceGateway
from tcp_repeat.core.playlists import PlaylistStore
from tcp_repeat.core.storage import CaptureFileStore


EVENT_CAPTURES = "captures"
EVENT_PLAYLISTS = "playlists"


def _unique(ids: Iterable[str]) -> List[str]:
    seen = set()
    ordered = []
    for capture_id in ids:
        if capture_id not in seen:
            seen.add(capture_id)
            ordered.append(capture_id)
    return ordered


class CatalogEngine:
    """
    Owns the shared catalog/playlist state and is its only writer.

    Request handlers and the WebSocket endpoint get a reference to one
    engine; nothing else mutates the stores.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        playlists: PlaylistStore,
        persistence: PersistenceGateway,
        files: CaptureFileStore,
        channel: Optional[BroadcastChannel] = None,
        default_interface: Optional[str] = None,
    ):
        self.logger = get_module_logger("Engine")
        self.catalog = catalog
        self.playlists = playlists
        self.persistence = persistence
        self.files = files
        self.channel = channel or BroadcastChannel()
        self.lock = asyncio.Lock()
        self.playlists.ensure_all(self.catalog.ids(), default_interface)
        self._prune_dangling()

    @classmethod
    def load(
        cls,
        persistence: PersistenceGateway,
        files: CaptureFileStore,
        channel: Optional[BroadcastChannel] = None,
        default_interface: Optional[str] = None,
    ) -> "CatalogEngine":
        """Build the engine from the persisted catalog and playlists."""
        return cls(
            CatalogStore(persistence.load_catalog()),
            PlaylistStore(persistence.load_playlists()),
            persistence,
            files,
            channel,
            default_interface,
        )

    # =========================================================================
    # Snapshots
    # =========================================================================

    def captures_snapshot(self) -> List[Dict[str, Any]]:
        return [c.to_dict() for c in self.catalog.list()]

    def playlists_snapshot(self) -> List[Dict[str, Any]]:
        return self.playlists.snapshot()

    def invariant_violations(self) -> List[str]:
        """Describe every broken invariant; empty when the state is coherent."""
        problems = []
        ids = self.catalog.ids()
        names = self.playlists.names()
        if not names or names[0] != ALL_PLAYLIST:
            problems.append("All is not the first playlist")
        if names.count(ALL_PLAYLIST) != 1:
            problems.append("there is not exactly one All playlist")
        if len(set(names)) != len(names):
            problems.append("playlist names are not unique")
        if ALL_PLAYLIST in self.playlists and self.playlists.all.members != ids:
            problems.append("All.members does not match the catalog")
        known = set(ids)
        for playlist in self.playlists:
            dangling = [m for m in playlist.members if m not in known]
            if dangling:
                problems.append(f"playlist '{playlist.name}' references missing captures {dangling}")
        return problems

    # =========================================================================
    # Internal helpers (lock held)
    # =========================================================================

    def _prune_dangling(self) -> None:
        known = set(self.catalog.ids())
        dangling = _unique(m for p in self.playlists for m in p.members if m not in known)
        if dangling:
            self.logger.warning("Dropping %d playlist references to missing captures", len(dangling))
            self.playlists.drop_members(dangling)

    def _rederive_all(self) -> None:
        self.playlists.ensure_all(self.catalog.ids())

    async def _commit(self, *, catalog: bool, playlists: bool) -> None:
        """Persist then broadcast what changed."""
        messages: List[Message] = []
        if catalog:
            await self.persistence.save_catalog(self.catalog.list())
            messages.append((EVENT_CAPTURES, self.captures_snapshot()))
        if playlists:
            await self.persistence.save_playlists(self.playlists)
            messages.append((EVENT_PLAYLISTS, self.playlists_snapshot()))
        await self.channel.broadcast(*messages)

    # =========================================================================
    # Catalog mutations
    # =========================================================================

    async def ingest(self, uploads: List[UploadedFile], target: Optional[str] = None) -> Tuple[List[Capture], bool]:
        """
        Add an upload batch to the catalog, optionally into ``target``.

        Files are already on disk. Returns the new captures and whether they
        were appended to ``target`` (False for All or an unknown name).
        """
        async with self.lock:
            ingested_at = self.catalog.now()
            captures = []
            appended = False
            for upload in uploads:
                capture = self.catalog.ingest(upload, ingested_at=ingested_at)
                captures.append(capture)
                if target and self.playlists.append_member(target, capture.id):
                    appended = True

            if target and not appended and target != ALL_PLAYLIST:
                self.logger.warning("Upload target playlist '%s' not found; captures only added to All", target)

            self._rederive_all()
            await self._commit(catalog=True, playlists=True)

        self.logger.info(
            "Ingested %d captures%s",
            len(captures),
            f" into '{target}'" if appended else "",
        )
        return captures, appended

    async def delete_captures(self, ids: Iterable[str]) -> Dict[str, List[str]]:
        """
        Delete captures and every playlist reference to them.

        Unknown ids are reported in ``missing`` and do not stop the batch. A
        storage failure on any backing file raises StorageFailure before
        anything is mutated.
        """
        requested = _unique(ids)
        async with self.lock:
            present = []
            missing = []
            for capture_id in requested:
                if capture_id in self.catalog:
                    present.append(self.catalog.get(capture_id))
                else:
                    self.logger.warning("Capture with id %s not found", capture_id)
                    missing.append(capture_id)

            staged = await asyncio.to_thread(
                self.files.stage_removals, [c.filename for c in present]
            )

            for capture in present:
                self.catalog.remove(capture.id)
            removed_refs = self.playlists.drop_members(requested)
            self._rederive_all()

            await asyncio.to_thread(self.files.purge, staged)

            if present or removed_refs:
                await self._commit(catalog=bool(present), playlists=True)

        deleted = [c.id for c in present]
        self.logger.info("Deleted %d captures (%d not found)", len(deleted), len(missing))
        return {"deleted": deleted, "missing": missing}

    # =========================================================================
    # Playlist mutations
    # =========================================================================

    async def create_playlist(self, name: str, settings: Optional[Dict[str, Any]] = None) -> Playlist:
        async with self.lock:
            playlist = self.playlists.create(name, settings)
            await self._commit(catalog=False, playlists=True)
        return playlist

    async def replace_playlist(self, name: str, body: Dict[str, Any]) -> Playlist:
        async with self.lock:
            playlist = self.playlists.replace(name, body, known_ids=self.catalog)
            await self._commit(catalog=False, playlists=True)
        return playlist

    async def update_playlist_settings(self, name: str, settings: Dict[str, Any]) -> Playlist:
        async with self.lock:
            playlist = self.playlists.update_settings(name, settings)
            await self._commit(catalog=False, playlists=True)
        return playlist

    async def rename_playlist(self, name: str, new_name: str) -> Playlist:
        async with self.lock:
            playlist = self.playlists.rename(name, new_name)
            await self._commit(catalog=False, playlists=True)
        return playlist

    async def delete_playlist(self, name: str) -> None:
        async with self.lock:
            self.playlists.delete(name)
            await self._commit(catalog=False, playlists=True)

    # =========================================================================
    # Replay support
    # =========================================================================

    def replay_plan(self, name: str) -> Tuple[PlaylistSettings, List[Path]]:
        """Settings and backing file paths for playing ``name``, in playlist order."""
        playlist = self.playlists.get(name)
        paths = [self.files.path_for(self.catalog.get(m).filename) for m in playlist.members]
        return playlist.settings, paths

    # =========================================================================
    # Observers
    # =========================================================================

    async def attach_observer(self, observer: Observer, preamble: Callable[[], Iterable[Message]]) -> bool:
        """Onboard ``observer``: ``preamble()`` then catalog then playlists.

        Runs under the writer lock so no mutation broadcast can interleave,
        and the preamble is built inside it so it cannot go stale.
        """
        async with self.lock:
            onboarding = list(preamble()) + [
                (EVENT_CAPTURES, self.captures_snapshot()),
                (EVENT_PLAYLISTS, self.playlists_snapshot()),
            ]
            return await self.channel.connect(observer, onboarding)

    def detach_observer(self, observer: Observer) -> None:
        self.channel.disconnect(observer)

    async def publish(self, *messages: Message) -> None:
        """Broadcast non-catalog state (preferences) in order with mutations."""
        async with self.lock:
            await self.channel.broadcast(*messages)
