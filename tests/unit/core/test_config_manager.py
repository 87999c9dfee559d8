"""Unit tests for ConfigManager."""

import pytest

from tcp_repeat.core.config_manager import ConfigManager


CONFIG = """
# server settings
host = 127.0.0.1
port = 4000   # inline comment
etc_dir = "/srv/tcp-repeat/etc"
debug = yes
broken line
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.txt"
    path.write_text(CONFIG, encoding="utf-8")
    return path


def test_read_config(config_file):
    manager = ConfigManager()
    config = manager.read_config(config_file)

    assert config == {
        "host": "127.0.0.1",
        "port": "4000",
        "etc_dir": "/srv/tcp-repeat/etc",
        "debug": "yes",
    }
    assert manager.get_int(config, "port") == 4000
    assert manager.get_bool(config, "debug") is True
    assert manager.get_str(config, "log_level", default="info") == "info"


def test_missing_file_is_empty(tmp_path):
    assert ConfigManager().read_config(tmp_path / "absent.txt") == {}


def test_invalid_int_falls_back_to_default():
    assert ConfigManager().get_int({"port": "http"}, "port", default=3003) == 3003


@pytest.mark.asyncio
async def test_read_config_async(config_file):
    config = await ConfigManager().read_config_async(config_file)
    assert config["host"] == "127.0.0.1"
