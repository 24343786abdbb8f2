#!/usr/bin/env python
"""
Provider settings schema.

Built once from the Flask config at application start and passed explicitly
to the OAuth client, the gateway factory and the session bootstrap, instead
of each module reading the environment on import.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.errors import ConfigurationError


class ProviderSettings(BaseModel):
    """Spotify OAuth and Web API settings."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    redirect_uri: Optional[str] = None
    scopes: List[str] = Field(default_factory=list)

    api_base_url: str = "https://api.spotify.com/v1"
    accounts_base_url: str = "https://accounts.spotify.com"
    post_login_redirect: str = "/"

    request_timeout: float = Field(default=10.0, gt=0)
    search_page_size: int = Field(default=15, ge=1, le=50)
    cookie_secure: bool = False

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            tokens = value.replace(",", " ").split()
        else:
            tokens = [str(token).strip() for token in value]
        ordered: List[str] = []
        for token in tokens:
            if token and token not in ordered:
                ordered.append(token)
        return ordered

    @field_validator("api_base_url", "accounts_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def scope_string(self) -> str:
        return " ".join(self.scopes)

    @property
    def authorize_url(self) -> str:
        return f"{self.accounts_base_url}/authorize"

    @property
    def token_url(self) -> str:
        return f"{self.accounts_base_url}/api/token"

    @property
    def has_credentials(self) -> bool:
        return not self.missing_credentials()

    def missing_credentials(self) -> List[str]:
        missing = []
        if not self.client_id:
            missing.append("SPOTIFY_CLIENT_ID")
        if not self.client_secret:
            missing.append("SPOTIFY_CLIENT_SECRET")
        if not self.redirect_uri:
            missing.append("SPOTIFY_REDIRECT_URI")
        return missing

    def ensure_credentials(self) -> "ProviderSettings":
        missing = self.missing_credentials()
        if missing:
            raise ConfigurationError(missing)
        return self


def load_provider_settings(config: Mapping[str, Any]) -> ProviderSettings:
    """Build provider settings from a Flask config mapping."""
    return ProviderSettings(
        client_id=config.get("SPOTIFY_CLIENT_ID") or None,
        client_secret=config.get("SPOTIFY_CLIENT_SECRET") or None,
        redirect_uri=config.get("SPOTIFY_REDIRECT_URI") or None,
        scopes=config.get("SPOTIFY_SCOPES"),
        api_base_url=config.get("SPOTIFY_API_BASE_URL") or "https://api.spotify.com/v1",
        accounts_base_url=config.get("SPOTIFY_ACCOUNTS_BASE_URL") or "https://accounts.spotify.com",
        post_login_redirect=config.get("PUBLIC_BASE_URL") or "/",
        request_timeout=config.get("PROVIDER_REQUEST_TIMEOUT_SECONDS") or 10.0,
        search_page_size=config.get("SEARCH_PAGE_SIZE") or 15,
        cookie_secure=bool(config.get("SESSION_COOKIE_SECURE", False)),
    )


__all__ = ["ProviderSettings", "load_provider_settings"]
