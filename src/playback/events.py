"""Normalized playback-engine events and the channel that carries them."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ready:
    device_id: str


@dataclass(frozen=True)
class NotReady:
    device_id: str


@dataclass(frozen=True)
class StateChanged:
    position_ms: int
    duration_ms: int
    paused: bool
    current_uri: Optional[str]


@dataclass(frozen=True)
class EngineError:
    kind: str  # initialization | authentication | account | playback | load_timeout
    message: str


EngineEvent = Union[Ready, NotReady, StateChanged, EngineError]
Listener = Callable[[EngineEvent], None]


class EventChannel:
    """Synchronous observer list; events are delivered in publish order."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def publish(self, event: EngineEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                # One failing subscriber must not starve the others
                logger.exception("Playback event listener failed for %s", type(event).__name__)

    def __len__(self) -> int:
        return len(self._listeners)


__all__ = ["Ready", "NotReady", "StateChanged", "EngineError", "EngineEvent", "EventChannel"]
