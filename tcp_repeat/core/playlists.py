"""Playlist Store - ordered playlist collection with the distinguished All."""

from typing import Any, Container, Dict, Iterable, Iterator, List, Optional

from tcp_repeat.core.errors import Forbidden, NameConflict, NotFound
from tcp_repeat.core.logging_utils import get_module_logger
from tcp_repeat.core.models import ALL_PLAYLIST, Playlist, PlaylistSettings


logger = get_module_logger("PlaylistStore")


class PlaylistStore:
    """
    Owns the playlist collection.

    Invariants maintained here:
    - ``All`` sits at index 0 once ``ensure_all`` has run
    - ``All.members`` is only ever assigned by ``ensure_all``
    - create and rename never produce a second playlist with the same name

    Lookups by name return the first match, which tolerates duplicate names
    loaded from an older playlists file.
    """

    def __init__(self, playlists: Optional[Iterable[Playlist]] = None):
        self._playlists: List[Playlist] = list(playlists or [])

    def __len__(self) -> int:
        return len(self._playlists)

    def __iter__(self) -> Iterator[Playlist]:
        return iter(list(self._playlists))

    def __contains__(self, name: object) -> bool:
        return self._find(name) is not None

    # ------------------------------------------------------------------
    # Lookup

    def _find(self, name: object) -> Optional[int]:
        for index, playlist in enumerate(self._playlists):
            if playlist.name == name:
                return index
        return None

    def get(self, name: str) -> Playlist:
        index = self._find(name)
        if index is None:
            raise NotFound(f"Playlist '{name}' not found", {"name": name})
        return self._playlists[index]

    @property
    def all(self) -> Playlist:
        return self.get(ALL_PLAYLIST)

    def names(self) -> List[str]:
        return [p.name for p in self._playlists]

    def snapshot(self) -> List[Dict[str, Any]]:
        return [p.to_dict() for p in self._playlists]

    def records(self) -> List[Dict[str, Any]]:
        return [p.to_record() for p in self._playlists]

    def default_settings(self) -> PlaylistSettings:
        """Settings a new playlist starts from: All's interface, otherwise defaults."""
        index = self._find(ALL_PLAYLIST)
        interface = self._playlists[index].settings.interface if index is not None else None
        return PlaylistSettings(interface=interface)

    # ------------------------------------------------------------------
    # Mutations

    def create(self, name: str, settings: Optional[Dict[str, Any]] = None) -> Playlist:
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Playlist name must be a non-empty string")
        if name in self:
            raise NameConflict(f"Playlist '{name}' already exists", {"name": name})

        playlist = Playlist(
            name=name,
            settings=PlaylistSettings.from_dict(settings, self.default_settings()),
        )
        self._playlists.append(playlist)
        logger.info("Created playlist '%s'", name)
        return playlist

    def replace(self, name: str, body: Dict[str, Any], known_ids: Optional[Container[str]] = None) -> Playlist:
        """Replace settings and membership of a non-All playlist wholesale.

        The body may omit ``name``; if present it must match. Renames go
        through ``rename``. When ``known_ids`` is given every member must be
        in it.
        """
        if name == ALL_PLAYLIST:
            raise Forbidden("The All playlist cannot be replaced", {"name": name})
        index = self._find(name)
        if index is None:
            raise NotFound(f"Playlist '{name}' not found", {"name": name})

        if not isinstance(body, dict):
            raise ValueError("Playlist body must be a JSON object")
        if body.get("name", name) != name:
            raise ValueError(
                f"Playlist body name '{body.get('name')}' does not match '{name}'; use rename"
            )

        current = self._playlists[index]
        replacement = Playlist.from_dict({**body, "name": name}, defaults=current.settings)
        if known_ids is not None:
            unknown = [m for m in dict.fromkeys(replacement.members) if m not in known_ids]
            if unknown:
                raise NotFound(
                    f"Playlist references {len(unknown)} unknown capture(s)",
                    {"ids": unknown},
                )
        replacement.member_settings = {
            capture_id: overrides
            for capture_id, overrides in replacement.member_settings.items()
            if capture_id in replacement.members
        }
        self._playlists[index] = replacement
        logger.info("Replaced playlist '%s' (%d members)", name, replacement.count)
        return replacement

    def update_settings(self, name: str, settings: Dict[str, Any]) -> Playlist:
        """Change replay settings only; allowed for All."""
        playlist = self.get(name)
        playlist.settings = PlaylistSettings.from_dict(settings, playlist.settings)
        logger.info("Updated settings of playlist '%s'", name)
        return playlist

    def rename(self, name: str, new_name: str) -> Playlist:
        if not isinstance(new_name, str) or not new_name.strip():
            raise ValueError("New playlist name must be a non-empty string")
        if name == ALL_PLAYLIST:
            raise Forbidden("The All playlist cannot be renamed", {"name": name})
        playlist = self.get(name)
        if new_name == name:
            return playlist
        if new_name in self:
            raise NameConflict(f"Playlist '{new_name}' already exists", {"name": new_name})
        playlist.name = new_name
        logger.info("Renamed playlist '%s' to '%s'", name, new_name)
        return playlist

    def delete(self, name: str) -> Playlist:
        if name == ALL_PLAYLIST:
            raise Forbidden("The All playlist cannot be deleted", {"name": name})
        index = self._find(name)
        if index is None:
            raise NotFound(f"Playlist '{name}' not found", {"name": name})
        playlist = self._playlists.pop(index)
        logger.info("Deleted playlist '%s'", name)
        return playlist

    def append_member(self, name: str, capture_id: str) -> bool:
        """Append to the first playlist called ``name``; All and unknown names are skipped."""
        if name == ALL_PLAYLIST:
            return False
        index = self._find(name)
        if index is None:
            return False
        self._playlists[index].members.append(capture_id)
        return True

    def drop_members(self, capture_ids: Iterable[str]) -> int:
        """Remove every reference to ``capture_ids`` from non-All playlists.

        Surviving members keep their order. Returns the number of references
        removed.
        """
        doomed = set(capture_ids)
        removed = 0
        for playlist in self._playlists:
            if playlist.is_all:
                continue
            kept = [m for m in playlist.members if m not in doomed]
            removed += len(playlist.members) - len(kept)
            playlist.members = kept
            for capture_id in doomed:
                playlist.member_settings.pop(capture_id, None)
        return removed

    def ensure_all(self, catalog_ids: Iterable[str], default_interface: Optional[str] = None) -> Playlist:
        """Create All if missing, move it to the front, re-derive its membership.

        Later playlists also named All are dropped; the first one wins.
        """
        index = self._find(ALL_PLAYLIST)
        if index is not None:
            extras = [i for i, p in enumerate(self._playlists) if p.is_all and i != index]
            if extras:
                logger.warning("Dropping %d duplicate All playlist(s)", len(extras))
                self._playlists = [
                    p for i, p in enumerate(self._playlists) if i not in extras
                ]
                index = self._find(ALL_PLAYLIST)
        if index is None:
            all_playlist = Playlist(
                name=ALL_PLAYLIST,
                settings=PlaylistSettings(interface=default_interface),
            )
            logger.info("Created the All playlist (interface=%s)", default_interface)
        else:
            all_playlist = self._playlists.pop(index)
        self._playlists.insert(0, all_playlist)
        all_playlist.members = list(catalog_ids)
        return all_playlist
