"""Unit tests for capture and playlist records."""

import dataclasses

import pytest

from tcp_repeat.core.models import (
    ALL_PLAYLIST,
    Capture,
    Playlist,
    PlaylistSettings,
    normalize_looping,
    normalize_speed,
)


class TestNormalizeSettings:

    @pytest.mark.parametrize("value,expected", [
        (None, "pcap"),
        ("pcap", "pcap"),
        ("TopSpeed", "topspeed"),
        (2, 2.0),
        ("0.5", 0.5),
    ])
    def test_speed(self, value, expected):
        assert normalize_speed(value) == expected

    @pytest.mark.parametrize("value", ["fast", 0, -1, True, [1]])
    def test_speed_rejects(self, value):
        with pytest.raises(ValueError):
            normalize_speed(value)

    @pytest.mark.parametrize("value,expected", [
        (None, "none"),
        ("continuous", "continuous"),
        (3, 3),
        ("5", 5),
    ])
    def test_looping(self, value, expected):
        assert normalize_looping(value) == expected

    @pytest.mark.parametrize("value", ["forever", 0, -2, False])
    def test_looping_rejects(self, value):
        with pytest.raises(ValueError):
            normalize_looping(value)


class TestCaptureRecord:

    def test_wire_form_is_camel_case(self):
        capture = Capture("id-1", "abc", "trace.pcap", 24, 1700000000)
        assert capture.to_dict() == {
            "id": "id-1",
            "filename": "abc",
            "originalName": "trace.pcap",
            "size": 24,
            "ingestedAt": 1700000000,
        }

    def test_legacy_keys_are_accepted(self):
        capture = Capture.from_dict(
            {"id": "id-1", "filename": "abc", "originalFilename": "old.pcap", "time": 42}
        )
        assert capture.original_name == "old.pcap"
        assert capture.ingested_at == 42
        assert capture.size == 0

    def test_missing_id_is_rejected(self):
        with pytest.raises(ValueError):
            Capture.from_dict({"filename": "abc"})

    def test_capture_is_frozen(self):
        capture = Capture("id-1", "abc", "trace.pcap", 24, 1700000000)
        with pytest.raises(dataclasses.FrozenInstanceError):
            capture.filename = "other"


class TestPlaylistRecord:

    def test_count_is_derived_not_trusted(self):
        playlist = Playlist.from_dict({"name": "Mine", "count": 99, "members": ["a", "b"]})
        assert playlist.count == 2
        assert playlist.to_dict()["count"] == 2

    def test_persisted_form_has_no_count(self):
        record = Playlist("Mine", members=["a"]).to_record()
        assert "count" not in record
        assert record["members"] == ["a"]

    def test_all_is_persisted_without_members(self):
        record = Playlist(ALL_PLAYLIST, members=["a", "b"]).to_record()
        assert "members" not in record

    def test_legacy_member_keys(self):
        playlist = Playlist.from_dict(
            {"name": "Old", "pcaps": ["a"], "pcapSettings": {"a": {"note": "x"}}}
        )
        assert playlist.members == ["a"]
        assert playlist.member_settings == {"a": {"note": "x"}}

    def test_settings_fall_back_to_defaults(self):
        defaults = PlaylistSettings(speed="topspeed", interface="eth1", looping=2)
        playlist = Playlist.from_dict({"name": "P", "settings": {"looping": "none"}}, defaults)
        assert playlist.settings == PlaylistSettings(speed="topspeed", interface="eth1", looping="none")

    @pytest.mark.parametrize("data", [
        {"name": ""},
        {"name": "P", "members": "a"},
        {"name": "P", "members": [1, 2]},
        ["not", "a", "dict"],
    ])
    def test_invalid_playlists(self, data):
        with pytest.raises(ValueError):
            Playlist.from_dict(data)
