#!/usr/bin/env python
"""
Session bootstrap.

``SessionBootstrap`` is the client-side check run on page load
(Unknown -> Checking -> Authenticated | Unauthenticated).
``complete_authorization`` is the server side of the provider's redirect
callback; it either yields a full credential and user id or raises,
so no partial credential is ever written to cookies.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional
from urllib.parse import urljoin

import requests

from src.auth.tokens import Credential, TokenStore
from src.clients.spotify_api import SpotifyApi
from src.errors import AuthorizationDenied, GatewayError, TokenExchangeFailure

logger = logging.getLogger(__name__)

SESSION_ENDPOINT = "/api/auth/session"
LOGIN_ENDPOINT = "/api/auth/login"


class SessionState(str, enum.Enum):
    UNKNOWN = "unknown"
    CHECKING = "checking"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class SessionBootstrap:
    """Decides whether the browsing session holds a valid access token cookie."""

    def __init__(self, base_url: str, *, http: Optional[requests.Session] = None, timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        self.http = http or requests.Session()
        self.timeout = timeout
        self._state = SessionState.UNKNOWN
        self._lock = threading.Lock()
        self._listeners: List[Callable[[SessionState], None]] = []

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    @property
    def login_url(self) -> str:
        return urljoin(self.base_url, LOGIN_ENDPOINT.lstrip("/"))

    def subscribe(self, listener: Callable[[SessionState], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _transition(self, state: SessionState) -> None:
        with self._lock:
            if self._state is state:
                return
            logger.debug("Session state %s -> %s", self._state.value, state.value)
            self._state = state
        for listener in list(self._listeners):
            listener(state)

    def check(self) -> SessionState:
        """Ask the session-introspection endpoint; network failures count as unauthenticated."""
        self._transition(SessionState.CHECKING)
        try:
            response = self.http.get(
                urljoin(self.base_url, SESSION_ENDPOINT.lstrip("/")),
                timeout=self.timeout,
            )
            authenticated = response.ok and bool((response.json() or {}).get("authenticated"))
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Session check failed: %s", exc)
            authenticated = False
        self._transition(SessionState.AUTHENTICATED if authenticated else SessionState.UNAUTHENTICATED)
        return self._state

    def require_login(self) -> str:
        """Drop back to Unauthenticated (e.g. after an engine authentication error) and return the login URL."""
        self._transition(SessionState.UNAUTHENTICATED)
        return self.login_url


@dataclass(frozen=True)
class AuthorizationResult:
    credential: Credential
    user_id: str


def complete_authorization(
    provider,
    *,
    code: Optional[str],
    error: Optional[str] = None,
) -> AuthorizationResult:
    """Exchange the callback's authorization code and resolve the user's Spotify id."""
    if error:
        logger.info("Spotify authorization denied: %s", error)
        raise AuthorizationDenied(f"Spotify authorization was denied: {error}")
    if not code:
        raise AuthorizationDenied("Missing authorization code")

    credential = provider.oauth.exchange_code(code)

    # Profile lookup runs on a private store; nothing reaches the cookies until it succeeds.
    api = SpotifyApi(provider.gateway(TokenStore(credential)))
    try:
        profile = api.current_user()
    except GatewayError as exc:
        raise TokenExchangeFailure("Could not load the Spotify profile", status_code=400) from exc
    user_id = profile.get("id")
    if not user_id:
        raise TokenExchangeFailure("Spotify profile carried no user id", status_code=400)

    # The gateway may have refreshed during the profile call; keep the newest pair.
    return AuthorizationResult(credential=api.gateway.token_store.get() or credential, user_id=str(user_id))


__all__ = ["SessionState", "SessionBootstrap", "AuthorizationResult", "complete_authorization"]
