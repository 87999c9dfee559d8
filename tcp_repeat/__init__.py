"""tcp-repeat: capture catalog, playlists and tcpreplay control server."""

from __future__ import annotations

from importlib import metadata
from typing import Optional, Sequence

try:
    __version__ = metadata.version("tcp-repeat")
except metadata.PackageNotFoundError:  # pragma: no cover - local dev
    __version__ = "0.0.0"


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Convenience wrapper that runs the async server entry point."""
    from .app.master import run as run_master

    return run_master(list(argv) if argv is not None else None)


__all__ = ["__version__", "run"]
