#!/usr/bin/env python
"""
Pydantic DTOs for the provider's track objects and for request payloads.

``TrackRef`` is copied verbatim from Spotify responses and never mutated
locally; it is either held in the playback session or denormalized into a
``Song`` row.
"""

from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _ProviderModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class ImageRef(_ProviderModel):
    url: str
    width: Optional[int] = None
    height: Optional[int] = None


class ArtistRef(_ProviderModel):
    name: str
    id: Optional[str] = None
    uri: Optional[str] = None


class AlbumRef(_ProviderModel):
    name: str = ""
    id: Optional[str] = None
    uri: Optional[str] = None
    images: List[ImageRef] = Field(default_factory=list)


class TrackRef(_ProviderModel):
    """A track as returned by the provider."""

    id: str
    name: str
    uri: str
    artists: List[ArtistRef] = Field(default_factory=list)
    album: AlbumRef = Field(default_factory=AlbumRef)
    duration_ms: int = Field(default=0, ge=0)

    @classmethod
    def from_provider(cls, payload: Any) -> "TrackRef":
        if isinstance(payload, TrackRef):
            return payload
        data = dict(payload)
        # Play-history submissions sometimes omit the id; it is the last URI segment.
        if not data.get("id") and data.get("uri"):
            data["id"] = str(data["uri"]).split(":")[-1]
        return cls.model_validate(data)

    @property
    def artist_names(self) -> str:
        return ", ".join(artist.name for artist in self.artists)

    @property
    def image_url(self) -> str:
        return self.album.images[0].url if self.album.images else ""

    @property
    def duration_seconds(self) -> int:
        return self.duration_ms // 1000


class PlayOffset(BaseModel):
    position: int = Field(ge=0)


class PlayRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uris: List[str] = Field(min_length=1)
    offset: Optional[PlayOffset] = None
    device_id: Optional[str] = Field(default=None, alias="deviceId")


class SingleTrackPlayRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    track_uri: str = Field(min_length=1, alias="trackUri")
    device_id: Optional[str] = Field(default=None, alias="deviceId")


class QueueRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uri: str = Field(min_length=1)
    device_id: Optional[str] = Field(default=None, alias="deviceId")


class _TrackPayload(BaseModel):
    track: TrackRef

    @field_validator("track", mode="before")
    @classmethod
    def _coerce_track(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return TrackRef.from_provider(value)
        return value


class FavoriteRequest(_TrackPayload):
    action: Literal["add", "remove"]


class PlayHistoryRequest(_TrackPayload):
    pass


__all__ = [
    "ImageRef",
    "ArtistRef",
    "AlbumRef",
    "TrackRef",
    "PlayOffset",
    "PlayRequest",
    "SingleTrackPlayRequest",
    "QueueRequest",
    "FavoriteRequest",
    "PlayHistoryRequest",
]
