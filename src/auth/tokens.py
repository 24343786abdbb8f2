#!/usr/bin/env python
"""Credential value type, token stores and the session cookies that back them."""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace as dc_replace
from typing import Any, Mapping, Optional

ACCESS_TOKEN_COOKIE = "access_token"
REFRESH_TOKEN_COOKIE = "refresh_token"
USER_ID_COOKIE = "spotify_id"

SESSION_COOKIES = (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, USER_ID_COOKIE)


@dataclass(frozen=True)
class Credential:
    """Access/refresh token pair. Expiry is not tracked; validity is discovered on 401."""

    access_token: str
    refresh_token: Optional[str] = None

    @classmethod
    def from_token_info(cls, token_info: Mapping[str, Any], *, previous: Optional["Credential"] = None) -> "Credential":
        refresh_token = token_info.get("refresh_token")
        if not refresh_token and previous is not None:
            refresh_token = previous.refresh_token
        return cls(access_token=token_info["access_token"], refresh_token=refresh_token or None)

    @classmethod
    def from_cookies(cls, cookies: Mapping[str, str]) -> Optional["Credential"]:
        access_token = cookies.get(ACCESS_TOKEN_COOKIE)
        if not access_token:
            return None
        return cls(access_token=access_token, refresh_token=cookies.get(REFRESH_TOKEN_COOKIE) or None)

    def with_access_token(self, access_token: str) -> "Credential":
        return dc_replace(self, access_token=access_token)

    def __repr__(self) -> str:
        return f"<Credential refresh={'yes' if self.refresh_token else 'no'}>"


class TokenStore:
    """Holds the session's current credential.

    The pair is stored as one immutable object and swapped under a lock, so a
    reader sees either the old pair or the new one, never a mix. The lock also
    serializes refreshes through ``refresh_lock``.
    """

    def __init__(self, credential: Optional[Credential] = None) -> None:
        self._credential = credential
        self._lock = threading.Lock()
        self.refresh_lock = threading.Lock()
        self.replaced = False

    def get(self) -> Optional[Credential]:
        with self._lock:
            return self._credential

    def replace(self, credential: Credential) -> None:
        with self._lock:
            self._credential = credential
            self.replaced = True

    def clear(self) -> None:
        with self._lock:
            self._credential = None
            self.replaced = True

    def __bool__(self) -> bool:
        return self.get() is not None


class CookieTokenStore(TokenStore):
    """Request-scoped store seeded from the incoming session cookies."""

    def __init__(self, cookies: Mapping[str, str]) -> None:
        super().__init__(Credential.from_cookies(cookies))

    def write_to(self, response, *, secure: bool) -> None:
        """Persist a credential replaced during this request back onto the response."""
        if not self.replaced:
            return
        credential = self.get()
        if credential is None:
            clear_session_cookies(response)
            return
        set_credential_cookies(response, credential, secure=secure)


def _cookie_kwargs(secure: bool) -> dict:
    return {"httponly": True, "secure": secure, "samesite": "Lax", "path": "/"}


def set_credential_cookies(response, credential: Credential, *, secure: bool) -> None:
    response.set_cookie(ACCESS_TOKEN_COOKIE, credential.access_token, **_cookie_kwargs(secure))
    if credential.refresh_token:
        response.set_cookie(REFRESH_TOKEN_COOKIE, credential.refresh_token, **_cookie_kwargs(secure))


def set_session_cookies(response, credential: Credential, user_id: str, *, secure: bool) -> None:
    set_credential_cookies(response, credential, secure=secure)
    response.set_cookie(USER_ID_COOKIE, user_id, **_cookie_kwargs(secure))


def clear_session_cookies(response) -> None:
    for name in SESSION_COOKIES:
        response.delete_cookie(name, path="/")


__all__ = [
    "ACCESS_TOKEN_COOKIE",
    "REFRESH_TOKEN_COOKIE",
    "USER_ID_COOKIE",
    "Credential",
    "TokenStore",
    "CookieTokenStore",
    "set_credential_cookies",
    "set_session_cookies",
    "clear_session_cookies",
]
