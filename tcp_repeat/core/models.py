"""Data model for captures and playlists.

Records travel as camelCase JSON dicts (API, broadcast, files on disk) and
live in memory as the dataclasses below. ``Playlist.count`` is derived from
``members`` and is never read back from a payload.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

ALL_PLAYLIST = "All"

SPEED_PCAP = "pcap"
SPEED_TOPSPEED = "topspeed"
LOOP_NONE = "none"
LOOP_CONTINUOUS = "continuous"

Speed = Union[str, float]
Looping = Union[str, int]


def _require_mapping(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be a JSON object")
    return data


def normalize_speed(value: Any) -> Speed:
    """Accept 'pcap', 'topspeed' or a positive multiplier."""
    if value in (None, ""):
        return SPEED_PCAP
    if isinstance(value, str) and value.lower() in (SPEED_PCAP, SPEED_TOPSPEED):
        return value.lower()
    if isinstance(value, bool):
        raise ValueError(f"Invalid speed: {value!r}")
    try:
        multiplier = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid speed: {value!r}") from None
    if multiplier <= 0:
        raise ValueError(f"Speed multiplier must be positive: {value!r}")
    return multiplier


def normalize_looping(value: Any) -> Looping:
    """Accept 'none', 'continuous' or a positive loop count."""
    if value in (None, ""):
        return LOOP_NONE
    if isinstance(value, str) and value.lower() in (LOOP_NONE, LOOP_CONTINUOUS):
        return value.lower()
    if isinstance(value, bool):
        raise ValueError(f"Invalid looping mode: {value!r}")
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid looping mode: {value!r}") from None
    if count <= 0:
        raise ValueError(f"Loop count must be positive: {value!r}")
    return count


@dataclass(frozen=True)
class Capture:
    """One ingested capture file. Immutable once created."""

    id: str
    filename: str
    original_name: str
    size: int
    ingested_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "originalName": self.original_name,
            "size": self.size,
            "ingestedAt": self.ingested_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Capture":
        data = _require_mapping(data, "Capture")
        if not data.get("id") or not data.get("filename"):
            raise ValueError("Capture record needs 'id' and 'filename'")
        return cls(
            id=str(data["id"]),
            filename=str(data["filename"]),
            original_name=str(data.get("originalName", data.get("originalFilename", data["filename"]))),
            size=int(data.get("size", 0)),
            ingested_at=int(data.get("ingestedAt", data.get("time", 0))),
        )


@dataclass
class PlaylistSettings:
    """Replay settings handed to the replay tool."""

    speed: Speed = SPEED_PCAP
    interface: Optional[str] = None
    looping: Looping = LOOP_NONE

    def to_dict(self) -> Dict[str, Any]:
        return {"speed": self.speed, "interface": self.interface, "looping": self.looping}

    @classmethod
    def from_dict(cls, data: Any, defaults: Optional["PlaylistSettings"] = None) -> "PlaylistSettings":
        base = defaults or cls()
        if data is None:
            return copy.copy(base)
        data = _require_mapping(data, "Playlist settings")
        interface = data.get("interface", base.interface)
        if interface is not None and not isinstance(interface, str):
            raise ValueError(f"Invalid interface: {interface!r}")
        return cls(
            speed=normalize_speed(data.get("speed", base.speed)),
            interface=interface or None,
            looping=normalize_looping(data.get("looping", base.looping)),
        )


@dataclass
class Playlist:
    """A named, ordered grouping of capture ids."""

    name: str
    members: List[str] = field(default_factory=list)
    settings: PlaylistSettings = field(default_factory=PlaylistSettings)
    member_settings: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def count(self) -> int:
        return len(self.members)

    @property
    def is_all(self) -> bool:
        return self.name == ALL_PLAYLIST

    def to_dict(self) -> Dict[str, Any]:
        """Presentation form, including the derived count."""
        return {
            "name": self.name,
            "count": self.count,
            "members": list(self.members),
            "settings": self.settings.to_dict(),
            "memberSettings": copy.deepcopy(self.member_settings),
        }

    def to_record(self) -> Dict[str, Any]:
        """Persisted form: no count, and no membership for All."""
        record: Dict[str, Any] = {
            "name": self.name,
            "settings": self.settings.to_dict(),
            "memberSettings": copy.deepcopy(self.member_settings),
        }
        if not self.is_all:
            record["members"] = list(self.members)
        return record

    @classmethod
    def from_dict(cls, data: Any, defaults: Optional[PlaylistSettings] = None) -> "Playlist":
        """Build a playlist from a payload or record; ``count`` is ignored."""
        data = _require_mapping(data, "Playlist")
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Playlist 'name' must be a non-empty string")

        members = data.get("members", data.get("pcaps", []))
        if not isinstance(members, list) or not all(isinstance(m, str) for m in members):
            raise ValueError("Playlist 'members' must be a list of capture ids")

        member_settings = data.get("memberSettings", data.get("pcapSettings", {})) or {}
        member_settings = _require_mapping(member_settings, "Playlist 'memberSettings'")

        return cls(
            name=name,
            members=list(members),
            settings=PlaylistSettings.from_dict(data.get("settings"), defaults),
            member_settings=copy.deepcopy(member_settings),
        )


__all__ = [
    "ALL_PLAYLIST",
    "SPEED_PCAP",
    "SPEED_TOPSPEED",
    "LOOP_NONE",
    "LOOP_CONTINUOUS",
    "Capture",
    "Playlist",
    "PlaylistSettings",
    "normalize_looping",
    "normalize_speed",
]
