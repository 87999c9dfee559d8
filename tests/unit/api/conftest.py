"""Pytest fixtures for API unit tests.

Builds a real APIController over a CatalogEngine rooted in ``tmp_path`` so
routes are exercised end to end through an aiohttp test client.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Coroutine, TypeVar

import pytest
from aiohttp import web

from tcp_repeat.core.api.controller import APIController
from tcp_repeat.core.api.server import APIServer
from tcp_repeat.core.devices import NetworkInterface
from tcp_repeat.core.engine import CatalogEngine
from tcp_repeat.core.paths import DataPaths
from tcp_repeat.core.persistence import PersistenceGateway
from tcp_repeat.core.preferences import PreferencesStore
from tcp_repeat.core.replay import ReplayTool
from tcp_repeat.core.storage import CaptureFileStore


T = TypeVar("T")

TEST_VERSION = "9.9.9"
TEST_INTERFACES = [
    NetworkInterface("eth0", ["10.0.0.2"], True),
    NetworkInterface("eth1", [], False),
]


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine synchronously for testing."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def create_test_app(controller: APIController) -> web.Application:
    """Create a test application with all routes and middleware."""
    return APIServer(controller, debug=True).create_app()


def build_controller(etc_dir: Path, captures_dir: Path) -> APIController:
    (etc_dir / "tcp-repeat-settings.json").write_text(json.dumps({
        "pathToTcpreplay": str(etc_dir / "tcpreplay"),
        "pcapsDir": str(captures_dir),
    }))
    preferences = PreferencesStore(DataPaths(etc_dir).preferences)
    preferences.load()

    engine = CatalogEngine.load(
        PersistenceGateway(DataPaths(etc_dir)),
        CaptureFileStore(lambda: preferences.captures_dir),
        default_interface=TEST_INTERFACES[0].name,
    )
    replay = ReplayTool(lambda: preferences.replay_tool_path)
    return APIController(engine, preferences, replay, TEST_INTERFACES, TEST_VERSION)


@pytest.fixture
def controller(etc_dir: Path, captures_dir: Path) -> APIController:
    return build_controller(etc_dir, captures_dir)
