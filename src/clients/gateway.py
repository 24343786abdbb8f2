#!/usr/bin/env python
"""
Authenticated access to the Spotify Web API.

Every outbound call goes through ``ProviderGateway.call``. On a 401 the
gateway runs the refresh-token grant once, stores the new credential and
re-issues the original request once. Anything else is surfaced unchanged.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import requests

from src.auth.oauth import SpotifyOAuthClient
from src.auth.tokens import Credential, TokenStore
from src.errors import GatewayError, NotAuthenticated, UpstreamFailure
from src.observability.metrics import record_provider_request
from src.observability.tracing import provider_span
from src.settings import ProviderSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayResponse:
    status_code: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def _decode_body(response: requests.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class ProviderGateway:
    """Issues API requests with the store's access token and drives refresh-and-retry."""

    def __init__(
        self,
        settings: ProviderSettings,
        token_store: TokenStore,
        oauth,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.settings = settings
        self.token_store = token_store
        self.oauth = oauth
        self._session = session or requests.Session()

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return f"{self.settings.api_base_url}/{endpoint.lstrip('/')}"

    def _send(
        self,
        method: str,
        endpoint: str,
        access_token: str,
        params: Optional[Mapping[str, Any]],
        body: Any,
    ) -> requests.Response:
        headers = {"Authorization": f"Bearer {access_token}"}
        started = time.monotonic()
        with provider_span("spotify.request", method=method, endpoint=endpoint):
            try:
                response = self._session.request(
                    method,
                    self._url(endpoint),
                    headers=headers,
                    params=params,
                    json=body,
                    timeout=self.settings.request_timeout,
                )
            except requests.RequestException as exc:
                record_provider_request("network_error", time.monotonic() - started)
                logger.warning("Spotify %s %s failed: %s", method, endpoint, exc)
                raise GatewayError("Spotify API unreachable", status_code=502) from exc
        elapsed = time.monotonic() - started
        if response.status_code == 401:
            record_provider_request("unauthorized", elapsed)
        elif 200 <= response.status_code < 300:
            record_provider_request("ok", elapsed)
        else:
            record_provider_request("error", elapsed)
        return response

    def _refresh_after_unauthorized(self, stale: Credential) -> Credential:
        # Serialize refreshes on this store; a caller that lost the race reuses
        # the credential the winner stored instead of refreshing again.
        with self.token_store.refresh_lock:
            current = self.token_store.get()
            if current is not None and current.access_token != stale.access_token:
                logger.debug("Access token already refreshed by a concurrent call")
                return current
            logger.info("Spotify returned 401; refreshing access token")
            fresh = self.oauth.refresh(current or stale)
            self.token_store.replace(fresh)
            return fresh

    def call(
        self,
        endpoint: str,
        method: str = "GET",
        body: Any = None,
        *,
        params: Optional[Mapping[str, Any]] = None,
    ) -> GatewayResponse:
        """Call ``endpoint`` and return the decoded response.

        Raises ``NotAuthenticated`` without a credential, ``TokenExchangeFailure``
        when the refresh grant is rejected and ``UpstreamFailure`` for any
        non-2xx answer, including a 401 on the single retried request.
        """
        method = method.upper()
        credential = self.token_store.get()
        if credential is None:
            raise NotAuthenticated()

        response = self._send(method, endpoint, credential.access_token, params, body)
        if response.status_code == 401 and credential.refresh_token:
            fresh = self._refresh_after_unauthorized(credential)
            response = self._send(method, endpoint, fresh.access_token, params, body)

        payload = _decode_body(response)
        if not 200 <= response.status_code < 300:
            logger.warning("Spotify %s %s answered %s", method, endpoint, response.status_code)
            raise UpstreamFailure(response.status_code, payload)
        return GatewayResponse(response.status_code, payload)


class SpotifyProvider:
    """App-wide holder for settings, the shared HTTP session and the OAuth client."""

    def __init__(self, settings: ProviderSettings, *, session: Optional[requests.Session] = None, oauth=None) -> None:
        self.settings = settings
        self.session = session or requests.Session()
        self.oauth = oauth or SpotifyOAuthClient(settings, session=self.session)

    def gateway(self, token_store: TokenStore) -> ProviderGateway:
        return ProviderGateway(self.settings, token_store, self.oauth, session=self.session)


__all__ = ["GatewayResponse", "ProviderGateway", "SpotifyProvider"]
