"""Per-request access to the provider API and request-body parsing for the routes."""

from __future__ import annotations

from typing import Type, TypeVar

from flask import current_app, request
from pydantic import BaseModel

from src.auth import request_token_store
from src.clients.gateway import SpotifyProvider
from src.clients.spotify_api import SpotifyApi
from src.errors import InvalidRequest
from src.settings import ProviderSettings

ModelT = TypeVar("ModelT", bound=BaseModel)


def provider() -> SpotifyProvider:
    return current_app.extensions["spotify"]


def provider_settings() -> ProviderSettings:
    return current_app.extensions["provider_settings"]


def spotify_api() -> SpotifyApi:
    """API bound to this request's cookie token store; refreshes land back in the cookies."""
    return SpotifyApi(
        provider().gateway(request_token_store()),
        search_page_size=provider_settings().search_page_size,
    )


def parse_body(model: Type[ModelT]) -> ModelT:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise InvalidRequest("Request body must be a JSON object")
    return model.model_validate(payload)


__all__ = ["provider", "provider_settings", "spotify_api", "parse_body"]
