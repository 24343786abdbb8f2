"""Client-side playback: engine adapter, event channel and session state."""

from src.playback.engine import EngineLibraryLoader, PlaybackEngineAdapter, PlaybackEngineHandle
from src.playback.events import EngineError, EventChannel, NotReady, Ready, StateChanged
from src.playback.session import (
    LibraryHistoryRecorder,
    PlaybackSession,
    PlaybackSessionState,
    ProviderPlaybackController,
)

__all__ = [
    "EngineLibraryLoader",
    "PlaybackEngineAdapter",
    "PlaybackEngineHandle",
    "EngineError",
    "EventChannel",
    "NotReady",
    "Ready",
    "StateChanged",
    "LibraryHistoryRecorder",
    "PlaybackSession",
    "PlaybackSessionState",
    "ProviderPlaybackController",
]
