#!/usr/bin/env python
"""The slice of the Spotify Web API this client uses, as thin calls over the gateway."""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from src.clients.gateway import ProviderGateway
from src.errors import InvalidRequest


class SpotifyApi:
    def __init__(self, gateway: ProviderGateway, *, search_page_size: int = 15) -> None:
        self.gateway = gateway
        self.search_page_size = search_page_size

    def current_user(self) -> Dict[str, Any]:
        return self.gateway.call("/me").body or {}

    def search_tracks(self, query: str, *, offset: int = 0, limit: Optional[int] = None) -> Dict[str, Any]:
        params = {
            "q": query,
            "type": "track",
            "limit": limit or self.search_page_size,
            "offset": max(0, int(offset)),
        }
        return self.gateway.call("/search", params=params).body or {}

    def track(self, track_id: str) -> Dict[str, Any]:
        if not track_id:
            raise InvalidRequest("Track ID is required")
        return self.gateway.call(f"/tracks/{track_id}").body or {}

    def start_playback(
        self,
        uris: Sequence[str],
        *,
        offset: Optional[int] = None,
        device_id: Optional[str] = None,
    ) -> None:
        body: Dict[str, Any] = {"uris": list(uris)}
        if offset is not None:
            body["offset"] = {"position": int(offset)}
        params = {"device_id": device_id} if device_id else None
        self.gateway.call("/me/player/play", "PUT", body, params=params)

    def pause(self, *, device_id: Optional[str] = None) -> None:
        params = {"device_id": device_id} if device_id else None
        self.gateway.call("/me/player/pause", "PUT", params=params)

    def enqueue(self, uri: str, *, device_id: Optional[str] = None) -> None:
        params: Dict[str, str] = {"uri": uri}
        if device_id:
            params["device_id"] = device_id
        self.gateway.call("/me/player/queue", "POST", params=params)


__all__ = ["SpotifyApi"]
