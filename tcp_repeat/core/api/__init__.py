"""
HTTP/WebSocket API for the tcp-repeat server.

REST endpoints under /api/v1 mutate the capture catalog and playlists;
/api/v1/events streams every state change to connected observers.
"""

from .server import APIServer
from .controller import APIController

__all__ = ["APIServer", "APIController"]
