#!/usr/bin/env python
"""
Playback session state.

``PlaybackSessionState`` is the single view of what is loaded and what is
playing. User commands (select/next/previous/seek/toggle) and engine events
(delivered through the adapter's ``EventChannel``) both mutate it.
A play command only moves ``current_index`` once the provider accepted it.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from src.errors import EngineFailure
from src.models.dto import TrackRef
from src.playback.engine import PlaybackEngineAdapter
from src.playback.events import EngineError, EngineEvent, NotReady, Ready, StateChanged
from src.services.library import record_play

logger = logging.getLogger(__name__)


class PlaybackController(Protocol):
    def play(self, uris: Sequence[str], offset: int, device_id: Optional[str]) -> None: ...


class HistoryRecorder(Protocol):
    def record(self, track: TrackRef) -> bool: ...


class ProviderPlaybackController:
    """Starts playback through ``SpotifyApi`` (and therefore through the refreshing gateway)."""

    def __init__(self, api) -> None:
        self.api = api

    def play(self, uris: Sequence[str], offset: int, device_id: Optional[str]) -> None:
        self.api.start_playback(uris, offset=offset, device_id=device_id)


class LibraryHistoryRecorder:
    """Writes plays for one user via the library service; needs an app context."""

    def __init__(self, user, **options) -> None:
        self.user = user
        self.options = options

    def record(self, track: TrackRef) -> bool:
        _, created = record_play(self.user, track, **self.options)
        return created


@dataclass(frozen=True)
class PlaybackSession:
    track_list: Tuple[TrackRef, ...] = ()
    current_index: int = 0
    is_playing: bool = False
    position_ms: int = 0
    duration_ms: int = 0
    has_more: bool = False
    last_search_query: Optional[str] = None

    @property
    def current_track(self) -> Optional[TrackRef]:
        if not self.track_list:
            return None
        return self.track_list[self.current_index]


@dataclass
class _State:
    track_list: List[TrackRef] = field(default_factory=list)
    current_index: int = 0
    is_playing: bool = False
    position_ms: int = 0
    duration_ms: int = 0
    has_more: bool = False
    last_search_query: Optional[str] = None
    device_id: Optional[str] = None
    engine_ready: bool = False
    last_error: Optional[EngineError] = None


class PlaybackSessionState:
    """Track list, current index and transport state for one browsing session.

    Mutations happen under a re-entrant lock that is released around provider
    and engine calls, so an engine event can be reconciled while a play
    command is still in flight.
    """

    def __init__(
        self,
        controller: PlaybackController,
        adapter: Optional[PlaybackEngineAdapter] = None,
        history: Optional[HistoryRecorder] = None,
    ) -> None:
        self.controller = controller
        self.adapter = adapter
        self.history = history
        self._state = _State()
        self._lock = threading.RLock()
        self._unsubscribe: Optional[Callable[[], None]] = None
        if adapter is not None:
            self._unsubscribe = adapter.channel.subscribe(self.reconcile)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # Read side

    def snapshot(self) -> PlaybackSession:
        with self._lock:
            s = self._state
            return PlaybackSession(
                track_list=tuple(s.track_list),
                current_index=s.current_index,
                is_playing=s.is_playing,
                position_ms=s.position_ms,
                duration_ms=s.duration_ms,
                has_more=s.has_more,
                last_search_query=s.last_search_query,
            )

    @property
    def track_list(self) -> Tuple[TrackRef, ...]:
        with self._lock:
            return tuple(self._state.track_list)

    @property
    def current_index(self) -> int:
        return self._state.current_index

    @property
    def current_track(self) -> Optional[TrackRef]:
        return self.snapshot().current_track

    @property
    def is_playing(self) -> bool:
        return self._state.is_playing

    @property
    def position_ms(self) -> int:
        return self._state.position_ms

    @property
    def duration_ms(self) -> int:
        return self._state.duration_ms

    @property
    def has_more(self) -> bool:
        return self._state.has_more

    @property
    def last_search_query(self) -> Optional[str]:
        return self._state.last_search_query

    @property
    def last_error(self) -> Optional[EngineError]:
        return self._state.last_error

    @property
    def device_id(self) -> Optional[str]:
        if self.adapter is not None and self.adapter.device_id:
            return self.adapter.device_id
        return self._state.device_id

    # List loading

    def load_list(self, tracks: Sequence[TrackRef], start_index: int = 0) -> None:
        """Replace the list and index wholesale without starting playback."""
        tracks = list(tracks)
        if tracks and not 0 <= start_index < len(tracks):
            raise IndexError(f"start index {start_index} outside list of {len(tracks)}")
        with self._lock:
            self._state.track_list = tracks
            self._state.current_index = start_index if tracks else 0
            self._state.position_ms = 0
            self._state.duration_ms = tracks[start_index].duration_ms if tracks else 0

    def load_search_results(
        self,
        tracks: Sequence[TrackRef],
        has_more: bool,
        query: Optional[str] = None,
    ) -> None:
        """A new result set replaces the list and resets the index to 0."""
        with self._lock:
            self.load_list(tracks, 0)
            self._state.has_more = bool(has_more)
            self._state.last_search_query = query

    def append_results(self, tracks: Sequence[TrackRef], has_more: bool) -> None:
        """Extend the list with the next page; the current index is unchanged."""
        with self._lock:
            self._state.track_list.extend(tracks)
            self._state.has_more = bool(has_more)

    # Transport

    def select(self, index: int) -> None:
        """Play the item at ``index`` of the loaded list."""
        with self._lock:
            length = len(self._state.track_list)
        if not 0 <= index < length:
            raise IndexError(f"index {index} outside list of {length}")
        self._play_index(index)

    def next(self) -> bool:
        with self._lock:
            target = self._state.current_index + 1
            if target >= len(self._state.track_list):
                return False
        self._play_index(target)
        return True

    def previous(self) -> bool:
        with self._lock:
            target = self._state.current_index - 1
            if target < 0 or not self._state.track_list:
                return False
        self._play_index(target)
        return True

    def _play_index(self, index: int) -> None:
        with self._lock:
            tracks = list(self._state.track_list)
        uris = [track.uri for track in tracks]
        device_id = self.device_id
        if self.adapter is not None and not self.adapter.is_ready:
            device_id = None

        # Raises on failure; the index is only moved once the command succeeded.
        self.controller.play(uris, index, device_id)

        track = tracks[index]
        with self._lock:
            if self._state.track_list and self._state.track_list[:len(tracks)] == tracks:
                self._state.current_index = index
                self._state.is_playing = True
                self._state.position_ms = 0
                self._state.duration_ms = track.duration_ms
            else:
                logger.info("Track list changed while a play command was in flight")
        self._record_history(track)

    def _record_history(self, track: TrackRef) -> None:
        if self.history is None:
            return
        try:
            self.history.record(track)
        except Exception:
            logger.exception("Failed to record play history for %s", track.id)

    def seek(self, position_ms: int) -> int:
        """Seek the engine, then update the local position. Returns the applied position."""
        if self.adapter is None:
            raise EngineFailure("initialization", "No playback engine to seek")
        with self._lock:
            duration = self._state.duration_ms
        position = min(max(0, int(position_ms)), duration)
        self.adapter.seek(position)
        with self._lock:
            self._state.position_ms = position
        return position

    def toggle_play(self) -> bool:
        if self.adapter is None:
            raise EngineFailure("initialization", "No playback engine to toggle")
        self.adapter.toggle_play()
        with self._lock:
            self._state.is_playing = not self._state.is_playing
            return self._state.is_playing

    # Engine events

    def reconcile(self, event: EngineEvent) -> None:
        """Apply an engine event. Applying the same event twice has the effect of applying it once."""
        with self._lock:
            if isinstance(event, StateChanged):
                self._apply_state(event)
            elif isinstance(event, Ready):
                self._state.device_id = event.device_id
                self._state.engine_ready = True
            elif isinstance(event, NotReady):
                self._state.engine_ready = False
            elif isinstance(event, EngineError):
                self._state.last_error = event

    def _apply_state(self, event: StateChanged) -> None:
        s = self._state
        s.duration_ms = max(0, event.duration_ms)
        s.position_ms = min(max(0, event.position_ms), s.duration_ms)
        s.is_playing = not event.paused
        if not event.current_uri or not s.track_list:
            return
        if s.track_list[s.current_index].uri == event.current_uri:
            return
        for position, track in enumerate(s.track_list):
            if track.uri == event.current_uri:
                s.current_index = position
                return
        # Unknown track: keep the local list, it decides what plays next
        logger.debug("Engine reports %s which is not in the loaded list", event.current_uri)


__all__ = [
    "PlaybackController",
    "HistoryRecorder",
    "ProviderPlaybackController",
    "LibraryHistoryRecorder",
    "PlaybackSession",
    "PlaybackSessionState",
]
