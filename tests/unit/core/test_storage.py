"""Unit tests for CaptureFileStore."""

import os

import pytest

from tcp_repeat.core.errors import NotFound, StorageFailure
from tcp_repeat.core.storage import STAGED_SUFFIX, CaptureFileStore


async def _chunks(*parts: bytes):
    for part in parts:
        yield part


@pytest.fixture
def files(captures_dir):
    return CaptureFileStore(lambda: captures_dir)


class TestPaths:

    def test_storage_names_are_random_hex(self):
        first = CaptureFileStore.new_storage_name()
        assert len(first) == 32
        assert first != CaptureFileStore.new_storage_name()
        int(first, 16)

    @pytest.mark.parametrize("name", ["", ".", "..", "../etc/passwd", "sub/file"])
    def test_path_for_rejects_non_bare_names(self, files, name):
        with pytest.raises(ValueError):
            files.path_for(name)

    def test_existing_path_requires_file(self, files, captures_dir):
        (captures_dir / "abc").write_bytes(b"x")
        assert files.existing_path("abc") == captures_dir / "abc"
        with pytest.raises(NotFound):
            files.existing_path("missing")

    def test_directory_is_resolved_on_each_call(self, tmp_path):
        current = {"dir": tmp_path / "one"}
        store = CaptureFileStore(lambda: current["dir"])
        assert store.path_for("f") == tmp_path / "one" / "f"
        current["dir"] = tmp_path / "two"
        assert store.path_for("f") == tmp_path / "two" / "f"


class TestWrites:

    @pytest.mark.asyncio
    async def test_write_stream_returns_size(self, files, captures_dir):
        size = await files.write_stream("abc", _chunks(b"hello ", b"world"))
        assert size == 11
        assert (captures_dir / "abc").read_bytes() == b"hello world"

    @pytest.mark.asyncio
    async def test_write_failure_is_storage_failure(self, tmp_path):
        store = CaptureFileStore(lambda: tmp_path / "does-not-exist")
        with pytest.raises(StorageFailure):
            await store.write_stream("abc", _chunks(b"data"))

    @pytest.mark.asyncio
    async def test_discard_ignores_missing(self, files, captures_dir):
        (captures_dir / "abc").write_bytes(b"x")
        await files.discard(["abc", "never-written"])
        assert not (captures_dir / "abc").exists()


class TestTwoPhaseDelete:

    def test_stage_then_purge(self, files, captures_dir):
        (captures_dir / "one").write_bytes(b"1")
        (captures_dir / "two").write_bytes(b"2")

        staged = files.stage_removals(["one", "two"])

        assert not (captures_dir / "one").exists()
        assert (captures_dir / f".one{STAGED_SUFFIX}").exists()

        files.purge(staged)
        assert list(captures_dir.iterdir()) == []

    def test_missing_file_is_skipped(self, files, captures_dir):
        (captures_dir / "one").write_bytes(b"1")
        staged = files.stage_removals(["gone", "one"])
        assert [s.original.name for s in staged] == ["one"]

    def test_restore_puts_files_back(self, files, captures_dir):
        (captures_dir / "one").write_bytes(b"1")
        staged = files.stage_removals(["one"])
        files.restore(staged)
        assert (captures_dir / "one").read_bytes() == b"1"

    def test_failure_restores_already_staged(self, files, captures_dir, monkeypatch):
        (captures_dir / "one").write_bytes(b"1")
        (captures_dir / "two").write_bytes(b"2")
        real_replace = os.replace

        def flaky_replace(src, dst):
            if str(src).endswith(os.sep + "two"):
                raise PermissionError(13, "Permission denied")
            return real_replace(src, dst)

        monkeypatch.setattr("tcp_repeat.core.storage.os.replace", flaky_replace)

        with pytest.raises(StorageFailure) as excinfo:
            files.stage_removals(["one", "two"])

        assert excinfo.value.details == {"filename": "two"}
        assert (captures_dir / "one").read_bytes() == b"1"
        assert (captures_dir / "two").read_bytes() == b"2"

    def test_invalid_filename_restores_already_staged(self, files, captures_dir):
        (captures_dir / "one").write_bytes(b"1")

        with pytest.raises(StorageFailure) as excinfo:
            files.stage_removals(["one", "sub/legacy.pcap"])

        assert excinfo.value.details == {"filename": "sub/legacy.pcap"}
        assert sorted(p.name for p in captures_dir.iterdir()) == ["one"]
