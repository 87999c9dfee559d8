from .broadcast import BroadcastChannel
from .catalog import CatalogStore, UploadedFile
from .engine import CatalogEngine
from .errors import (
    CatalogError,
    Forbidden,
    NameConflict,
    NotFound,
    ReplayUnavailable,
    StartupError,
    StorageFailure,
)
from .models import ALL_PLAYLIST, Capture, Playlist, PlaylistSettings
from .persistence import PersistenceGateway
from .playlists import PlaylistStore
from .preferences import PreferencesStore
from .storage import CaptureFileStore

__all__ = [
    'ALL_PLAYLIST',
    'BroadcastChannel',
    'CatalogEngine',
    'CatalogError',
    'CatalogStore',
    'Capture',
    'CaptureFileStore',
    'Forbidden',
    'NameConflict',
    'NotFound',
    'PersistenceGateway',
    'Playlist',
    'PlaylistSettings',
    'PlaylistStore',
    'PreferencesStore',
    'ReplayUnavailable',
    'StartupError',
    'StorageFailure',
    'UploadedFile',
]
