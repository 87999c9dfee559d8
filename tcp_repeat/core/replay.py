"""
Replay Tool - availability probe and launcher for the external tcpreplay.

Packets are never touched here: the playlist's files and settings are turned
into a tcpreplay command line and the process runs on its own.
"""

import asyncio
import os
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Set

from tcp_repeat.core.asyncio_utils import create_logged_task
from tcp_repeat.core.errors import ReplayUnavailable
from tcp_repeat.core.logging_utils import get_module_logger
from tcp_repeat.core.models import (
    LOOP_CONTINUOUS,
    LOOP_NONE,
    SPEED_PCAP,
    SPEED_TOPSPEED,
    PlaylistSettings,
)


def build_replay_args(settings: PlaylistSettings, files: Sequence[Path]) -> List[str]:
    """tcpreplay arguments (without the executable) for ``settings``."""
    if not settings.interface:
        raise ValueError("Playlist has no interface to replay onto")
    if not files:
        raise ValueError("Playlist has no captures to replay")

    args = [f"--intf1={settings.interface}"]

    if settings.speed == SPEED_TOPSPEED:
        args.append("--topspeed")
    elif settings.speed != SPEED_PCAP:
        args.append(f"--multiplier={settings.speed:g}")

    if settings.looping == LOOP_CONTINUOUS:
        args.append("--loop=0")
    elif settings.looping != LOOP_NONE:
        args.append(f"--loop={int(settings.looping)}")

    args.extend(str(f) for f in files)
    return args


class ReplayTool:
    """Tracks whether tcpreplay is usable and launches replay runs."""

    def __init__(self, executable: Callable[[], str]):
        self.logger = get_module_logger("ReplayTool")
        self._executable = executable
        self.available = False
        self._runs: Set[asyncio.Task] = set()

    @property
    def executable(self) -> str:
        return self._executable()

    async def probe(self) -> bool:
        """Run ``<tcpreplay> --help`` once and cache whether it worked."""
        path = self.executable
        if not path or not await asyncio.to_thread(os.path.exists, path):
            self.logger.warning("tcpreplay was not found at %r", path)
            self.available = False
            return False

        try:
            process = await asyncio.create_subprocess_exec(
                path,
                "--help",
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            returncode = await process.wait()
        except OSError as e:
            self.logger.warning("tcpreplay was found but could not be executed: %s", e)
            self.available = False
            return False

        self.available = returncode == 0
        if self.available:
            self.logger.info("'tcpreplay --help' ran successfully")
        else:
            self.logger.warning("'tcpreplay --help' exited with status %d", returncode)
        return self.available

    async def play(self, name: str, settings: PlaylistSettings, files: Sequence[Path]) -> Optional[int]:
        """Launch tcpreplay for a playlist; returns the process id."""
        if not self.available:
            raise ReplayUnavailable("tcpreplay is not available on this server")

        args = build_replay_args(settings, files)
        self.logger.info("Playing '%s': %s %s", name, self.executable, " ".join(args))
        try:
            process = await asyncio.create_subprocess_exec(
                self.executable,
                *args,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ReplayUnavailable(f"Could not start tcpreplay: {e}") from e

        create_logged_task(
            self._wait(name, process),
            logger=self.logger,
            context=f"replay:{name}",
            pending=self._runs,
        )
        return process.pid

    async def _wait(self, name: str, process: asyncio.subprocess.Process) -> None:
        _, stderr = await process.communicate()
        if process.returncode == 0:
            self.logger.info("Replay of '%s' finished", name)
        else:
            message = stderr.decode(errors="replace").strip() if stderr else ""
            self.logger.warning("Replay of '%s' exited with %s: %s", name, process.returncode, message)

    @property
    def active_runs(self) -> int:
        return len(self._runs)
