"""
API route modules.

- system: Health and network interfaces
- preferences: Read and replace preferences
- playlists: Playlist management and replay
- captures: Upload, delete and download captures
- events: Observer WebSocket
"""

from .system import setup_system_routes
from .preferences import setup_preferences_routes
from .playlists import setup_playlist_routes
from .captures import setup_capture_routes
from .events import setup_event_routes


def setup_all_routes(app, controller):
    """Register all API routes with the application."""
    setup_system_routes(app, controller)
    setup_preferences_routes(app, controller)
    setup_playlist_routes(app, controller)
    setup_capture_routes(app, controller)
    setup_event_routes(app, controller)


__all__ = ["setup_all_routes"]
