#!/usr/bin/env python
"""
Playback engine adapter.

Wraps the provider's real-time playback engine (the Web Playback SDK
``Player`` object, or anything with the same listener/connect surface)
and turns its callback lifecycle into events on an ``EventChannel``.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from src.errors import EngineFailure, EngineLoadTimeout
from src.playback.events import EngineError, EventChannel, NotReady, Ready, StateChanged

logger = logging.getLogger(__name__)

SDK_ELEMENT_ID = "spotify-sdk"
SDK_SCRIPT_URL = "https://sdk.scdn.co/spotify-player.js"

ERROR_CHANNELS = {
    "initialization_error": "initialization",
    "authentication_error": "authentication",
    "account_error": "account",
    "playback_error": "playback",
}


class PlaybackEngine(Protocol):
    def add_listener(self, event: str, callback: Callable[[Any], None]) -> Any: ...

    def remove_listener(self, event: str, callback: Callable[[Any], None]) -> Any: ...

    def connect(self) -> bool: ...

    def disconnect(self) -> None: ...

    def seek(self, position_ms: int) -> None: ...

    def toggle_play(self) -> None: ...

    def get_current_state(self) -> Optional[Dict[str, Any]]: ...


# Called as factory(name=..., get_oauth_token=..., volume=...)
EngineFactory = Callable[..., PlaybackEngine]


class EngineLibraryLoader:
    """Injects the engine's client library once per page and waits for it to load.

    ``inject`` adds the script (keyed by ``element_id``); ``probe`` returns the
    engine factory once the library is available, otherwise ``None``.
    """

    def __init__(
        self,
        inject: Callable[[str, str], None],
        probe: Callable[[], Optional[EngineFactory]],
        *,
        element_id: str = SDK_ELEMENT_ID,
        script_url: str = SDK_SCRIPT_URL,
        timeout: float = 10.0,
        interval: float = 0.3,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._inject = inject
        self._probe = probe
        self.element_id = element_id
        self.script_url = script_url
        self.timeout = timeout
        self.interval = interval
        self._sleep = sleep
        self._clock = clock
        self._injected = False
        self._lock = threading.Lock()

    def ensure_injected(self) -> None:
        with self._lock:
            if self._injected:
                return
            self._inject(self.element_id, self.script_url)
            self._injected = True

    def wait_for_library(self) -> EngineFactory:
        """Poll until the library is available; raises ``EngineLoadTimeout`` after ``timeout``."""
        self.ensure_injected()
        started = self._clock()
        while True:
            factory = self._probe()
            if factory is not None:
                return factory
            waited = self._clock() - started
            if waited >= self.timeout:
                raise EngineLoadTimeout(waited)
            self._sleep(min(self.interval, max(0.0, self.timeout - waited)))


@dataclass
class PlaybackEngineHandle:
    device_id: Optional[str] = None
    is_ready: bool = False


class PlaybackEngineAdapter:
    """Owns one engine instance and publishes normalized events for it."""

    def __init__(
        self,
        loader: EngineLibraryLoader,
        access_token: Optional[str],
        *,
        channel: Optional[EventChannel] = None,
        on_auth_failure: Optional[Callable[[], Any]] = None,
        name: str = "Web Player",
        volume: float = 0.5,
    ) -> None:
        self.loader = loader
        self.channel = channel or EventChannel()
        self.on_auth_failure = on_auth_failure
        self.name = name
        self.volume = volume
        self.handle = PlaybackEngineHandle()
        self._access_token = access_token
        self._engine: Optional[PlaybackEngine] = None
        self._listeners: List[Tuple[str, Callable[[Any], None]]] = []

    @property
    def engine(self) -> Optional[PlaybackEngine]:
        return self._engine

    @property
    def device_id(self) -> Optional[str]:
        return self.handle.device_id

    @property
    def is_ready(self) -> bool:
        return self.handle.is_ready

    def _supply_token(self, callback: Callable[[str], None]) -> None:
        callback(self._access_token or "")

    def start(self) -> bool:
        """Load the library, build the engine and connect it. Returns the connect result."""
        if self._engine is not None:
            return True
        if not self._access_token:
            raise EngineFailure("authentication", "No access token for the playback engine")
        try:
            factory = self.loader.wait_for_library()
        except EngineLoadTimeout as exc:
            logger.error("Playback engine library did not load: %s", exc)
            self.channel.publish(EngineError(exc.kind, exc.message))
            raise

        engine = factory(name=self.name, get_oauth_token=self._supply_token, volume=self.volume)
        self._engine = engine
        self._listen("ready", self._on_ready)
        self._listen("not_ready", self._on_not_ready)
        self._listen("player_state_changed", self._on_state_changed)
        for sdk_event, kind in ERROR_CHANNELS.items():
            self._listen(sdk_event, self._error_handler(kind))

        connected = bool(engine.connect())
        if connected:
            logger.info("Playback engine connected")
        else:
            logger.error("Playback engine connection failed")
            # Drop the half-built engine so the next start() connects again
            self.teardown()
            self.channel.publish(EngineError("initialization", "Player connection failed"))
        return connected

    def _listen(self, event: str, callback: Callable[[Any], None]) -> None:
        assert self._engine is not None
        self._engine.add_listener(event, callback)
        self._listeners.append((event, callback))

    def _on_ready(self, payload: Dict[str, Any]) -> None:
        device_id = payload.get("device_id")
        logger.info("Playback engine ready on device %s", device_id)
        self.handle.device_id = device_id
        self.handle.is_ready = True
        self.channel.publish(Ready(device_id))

    def _on_not_ready(self, payload: Dict[str, Any]) -> None:
        device_id = payload.get("device_id")
        logger.warning("Playback device went offline: %s", device_id)
        # Keep the device id; the engine may come back on the same one
        self.handle.is_ready = False
        self.channel.publish(NotReady(device_id))

    def _on_state_changed(self, state: Optional[Dict[str, Any]]) -> None:
        event = normalize_state(state)
        if event is not None:
            self.channel.publish(event)

    def _error_handler(self, kind: str) -> Callable[[Dict[str, Any]], None]:
        def _handle(payload: Dict[str, Any]) -> None:
            message = (payload or {}).get("message") or kind
            logger.error("Playback engine %s error: %s", kind, message)
            self.channel.publish(EngineError(kind, message))
            if kind == "authentication" and self.on_auth_failure is not None:
                self.on_auth_failure()

        return _handle

    def update_token(self, access_token: Optional[str]) -> None:
        """Rebuild the engine when the access token changes."""
        if access_token == self._access_token:
            return
        self.teardown()
        self._access_token = access_token
        if access_token:
            self.start()

    def teardown(self) -> None:
        engine = self._engine
        if engine is None:
            return
        for event, callback in self._listeners:
            engine.remove_listener(event, callback)
        self._listeners = []
        try:
            engine.disconnect()
        except Exception as exc:
            logger.warning("Playback engine disconnect failed: %s", exc)
        self._engine = None
        self.handle = PlaybackEngineHandle()

    def _require_engine(self) -> PlaybackEngine:
        if self._engine is None:
            raise EngineFailure("initialization", "Playback engine not started")
        return self._engine

    def seek(self, position_ms: int) -> None:
        self._require_engine().seek(int(position_ms))

    def toggle_play(self) -> None:
        self._require_engine().toggle_play()

    def current_state(self) -> Optional[StateChanged]:
        return normalize_state(self._require_engine().get_current_state())


def normalize_state(state: Optional[Dict[str, Any]]) -> Optional[StateChanged]:
    """Map an SDK playback-state payload to ``StateChanged``; ``None`` means nothing is loaded."""
    if not state:
        return None
    current = ((state.get("track_window") or {}).get("current_track") or {})
    return StateChanged(
        position_ms=int(state.get("position") or 0),
        duration_ms=int(state.get("duration") or 0),
        paused=bool(state.get("paused", True)),
        current_uri=current.get("uri"),
    )


__all__ = [
    "SDK_ELEMENT_ID",
    "PlaybackEngine",
    "EngineLibraryLoader",
    "PlaybackEngineHandle",
    "PlaybackEngineAdapter",
    "normalize_state",
]
