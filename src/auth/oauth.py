#!/usr/bin/env python
"""Spotify authorization-code and refresh-token grants via Spotipy."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Optional, Tuple

import requests
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from src.auth.tokens import Credential
from src.errors import TokenExchangeFailure
from src.observability.metrics import record_token_refresh
from src.settings import ProviderSettings

logger = logging.getLogger(__name__)


def _failure_details(exc: Exception) -> Tuple[Optional[int], Any]:
    """Status and body the token endpoint answered with, when it answered at all."""
    response = getattr(exc, "response", None)
    if response is None:
        # Spotipy raises its own error while handling the HTTPError
        response = getattr(exc.__context__, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(exc, SpotifyOauthError):
        body = {key: value for key, value in (("error", exc.error), ("error_description", exc.error_description)) if value}
        return status, body or None
    if response is None:
        return None, None
    try:
        return status, response.json()
    except ValueError:
        return status, response.text or None


class SpotifyOAuthClient:
    """Thin wrapper that keeps Spotipy's token cache out of the picture.

    Tokens live in the session cookies, so every grant is issued with
    ``check_cache=False``. One client serves every user; grants run one at a
    time and the in-memory cache is emptied as soon as the grant's result
    has been read.
    """

    def __init__(self, settings: ProviderSettings, *, session: Optional[requests.Session] = None) -> None:
        self.settings = settings
        self._session = session
        self._oauth: Optional[SpotifyOAuth] = None
        self._grant_lock = threading.Lock()

    def _client(self) -> SpotifyOAuth:
        if self._oauth is None:
            self.settings.ensure_credentials()
            oauth = SpotifyOAuth(
                client_id=self.settings.client_id,
                client_secret=self.settings.client_secret,
                redirect_uri=self.settings.redirect_uri,
                scope=self.settings.scope_string or None,
                cache_handler=MemoryCacheHandler(),
                requests_session=self._session or True,
                requests_timeout=self.settings.request_timeout,
                open_browser=False,
            )
            oauth.OAUTH_AUTHORIZE_URL = self.settings.authorize_url
            oauth.OAUTH_TOKEN_URL = self.settings.token_url
            self._oauth = oauth
        return self._oauth

    def _grant(self, run: Callable[[SpotifyOAuth], Any]) -> Optional[Dict[str, Any]]:
        """Run one token-endpoint grant and return the token info it cached."""
        with self._grant_lock:
            oauth = self._client()
            try:
                try:
                    run(oauth)
                except KeyError:
                    # Spotipy caches the payload before indexing access_token; the caller checks it
                    pass
                return oauth.cache_handler.get_cached_token()
            finally:
                oauth.cache_handler.save_token_to_cache(None)

    def authorize_url(self, state: Optional[str] = None) -> str:
        return self._client().get_authorize_url(state=state)

    def exchange_code(self, code: str) -> Credential:
        """Trade an authorization code for a credential (authorization_code grant)."""
        try:
            token_info = self._grant(lambda oauth: oauth.get_access_token(code=code, as_dict=False, check_cache=False))
        except (SpotifyOauthError, requests.RequestException) as exc:
            upstream_status, body = _failure_details(exc)
            logger.warning("Authorization code exchange failed (%s): %s", upstream_status, body or exc)
            raise TokenExchangeFailure(
                "Spotify authorization failed", status_code=400, upstream_status=upstream_status, body=body
            ) from exc
        if not token_info or not token_info.get("access_token"):
            raise TokenExchangeFailure("Spotify authorization returned no access token", status_code=400)
        return Credential.from_token_info(token_info)

    def refresh(self, credential: Credential) -> Credential:
        """Run the refresh_token grant; keeps the old refresh token unless a new one is issued."""
        if not credential.refresh_token:
            raise TokenExchangeFailure("No refresh token available")
        try:
            token_info = self._grant(lambda oauth: oauth.refresh_access_token(credential.refresh_token))
        except (SpotifyOauthError, requests.RequestException) as exc:
            record_token_refresh("rejected" if isinstance(exc, SpotifyOauthError) else "error")
            upstream_status, body = _failure_details(exc)
            logger.warning("Access token refresh failed (%s): %s", upstream_status, body or exc)
            raise TokenExchangeFailure(upstream_status=upstream_status, body=body) from exc
        if not token_info or not token_info.get("access_token"):
            record_token_refresh("rejected")
            raise TokenExchangeFailure("Refresh response carried no access token")
        record_token_refresh("success")
        return Credential.from_token_info(token_info, previous=credential)


__all__ = ["SpotifyOAuthClient"]
