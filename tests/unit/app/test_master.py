"""Unit tests for the server entry point."""

from pathlib import Path
from unittest.mock import patch

import pytest

from tcp_repeat.app import master


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.txt"
    with patch.object(master, "CONFIG_PATH", path):
        yield path


def test_defaults_without_config(config_path):
    args = master.parse_args([])
    assert args.host == "0.0.0.0"
    assert args.port == 3003
    assert args.debug is False


def test_config_file_supplies_defaults(config_path):
    config_path.write_text("port = 4000\netc_dir = /srv/etc\ndebug = true\n", encoding="utf-8")
    args = master.parse_args([])
    assert args.port == 4000
    assert args.etc_dir == Path("/srv/etc")
    assert args.debug is True


def test_flags_override_config(config_path):
    config_path.write_text("port = 4000\n", encoding="utf-8")
    assert master.parse_args(["--port", "5000"]).port == 5000


def test_missing_preferences_exit_status(config_path, tmp_path):
    with patch.object(master, "configure_logging"):
        status = master.run(["--etc-dir", str(tmp_path), "--log-file", ""])
    assert status == 1
