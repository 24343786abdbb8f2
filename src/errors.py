#!/usr/bin/env python
"""Error taxonomy shared by the gateway, the OAuth flow, the routes and the player."""

from __future__ import annotations

from typing import Any, Dict, Optional


class MusicClientError(Exception):
    """Base class; carries the HTTP status and JSON body used when it reaches a route."""

    status_code = 500
    error = "internal_error"

    def __init__(self, message: Optional[str] = None, *, status_code: Optional[int] = None) -> None:
        super().__init__(message or self.error)
        self.message = message or self.error
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class ConfigurationError(MusicClientError):
    """Required OAuth credentials or environment values are absent."""

    status_code = 500
    error = "Spotify API credentials not set"

    def __init__(self, missing=(), message: Optional[str] = None) -> None:
        super().__init__(message or self.error)
        self.missing = tuple(missing)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        if self.missing:
            payload["missing"] = list(self.missing)
        return payload


class InvalidRequest(MusicClientError):
    status_code = 400
    error = "invalid_request"


class AuthorizationDenied(MusicClientError):
    """The user declined consent or the callback carried no usable code."""

    status_code = 400
    error = "Spotify authorization was denied"


class NotAuthenticated(MusicClientError):
    status_code = 401
    error = "Not authenticated"


class GatewayError(MusicClientError):
    """A provider call could not be completed."""

    status_code = 502
    error = "Spotify API error"


class TokenExchangeFailure(GatewayError):
    """The authorization-code or refresh-token grant was rejected."""

    status_code = 401
    error = "Failed to refresh access token"

    def __init__(self, message: Optional[str] = None, *, status_code: Optional[int] = None,
                 upstream_status: Optional[int] = None, body: Any = None) -> None:
        super().__init__(message, status_code=status_code)
        self.upstream_status = upstream_status
        self.body = body

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        if self.body is not None:
            payload["detail"] = self.body
        return payload


class UpstreamFailure(GatewayError):
    """The provider answered with a non-2xx status; never retried automatically."""

    def __init__(self, upstream_status: int, body: Any = None, message: Optional[str] = None) -> None:
        super().__init__(message or self.error, status_code=upstream_status)
        self.upstream_status = upstream_status
        self.body = body

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "detail": self.body}


class EngineFailure(MusicClientError):
    """The playback engine reported an error on one of its channels."""

    error = "Playback engine error"

    def __init__(self, kind: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"{self.error} ({kind})")
        self.kind = kind

    @property
    def is_authentication(self) -> bool:
        return self.kind == "authentication"


class EngineLoadTimeout(EngineFailure):
    """The engine's client library did not become available in time."""

    def __init__(self, waited_seconds: float) -> None:
        super().__init__("load_timeout", f"Playback engine library not available after {waited_seconds:.1f}s")
        self.waited_seconds = waited_seconds


class DuplicateFavoriteError(MusicClientError):
    status_code = 409
    error = "This song is already in favorites"


__all__ = [
    "MusicClientError",
    "ConfigurationError",
    "InvalidRequest",
    "AuthorizationDenied",
    "NotAuthenticated",
    "GatewayError",
    "TokenExchangeFailure",
    "UpstreamFailure",
    "EngineFailure",
    "EngineLoadTimeout",
    "DuplicateFavoriteError",
]
