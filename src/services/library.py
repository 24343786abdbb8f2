#!/usr/bin/env python
"""Persistence collaborator: users, songs, favorites and play history."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from src.database.db_manager import Favorite, PlayHistory, Song, User, db, utcnow
from src.errors import DuplicateFavoriteError
from src.models.dto import TrackRef
from src.observability.metrics import record_play_history

logger = logging.getLogger(__name__)

DEFAULT_DEDUPE_WINDOW = timedelta(minutes=5)
DEFAULT_HISTORY_LIMIT = 100


def get_user(spotify_id: str) -> Optional[User]:
    return User.query.filter_by(spotify_id=spotify_id).first()


def get_or_create_user(spotify_id: str) -> User:
    user = get_user(spotify_id)
    if user is not None:
        return user
    user = User(spotify_id=spotify_id)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Another request created the same user first
        db.session.rollback()
        user = get_user(spotify_id)
        if user is None:
            raise
    else:
        logger.info("Created user record %s", user.id)
    return user


def upsert_song(track: TrackRef) -> Song:
    """Return the Song for ``track``, creating it if needed. Existing rows are left as-is."""
    song = Song.query.filter_by(spotify_id=track.id).first()
    if song is not None:
        return song
    song = Song(
        spotify_id=track.id,
        title=track.name[:255],
        artist=track.artist_names[:512],
        album=(track.album.name or '')[:255],
        duration=track.duration_seconds,
        image_url=track.image_url[:500],
    )
    db.session.add(song)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        song = Song.query.filter_by(spotify_id=track.id).first()
        if song is None:
            raise
    return song


def add_favorite(user: User, track: TrackRef) -> Favorite:
    """Favorite ``track`` for ``user``; a second add raises ``DuplicateFavoriteError``."""
    song = upsert_song(track)
    existing = Favorite.query.filter_by(user_id=user.id, song_id=song.id).first()
    if existing is not None:
        raise DuplicateFavoriteError()

    favorite = Favorite(user_id=user.id, song_id=song.id)
    db.session.add(favorite)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise DuplicateFavoriteError() from exc
    return favorite


def remove_favorite(user: User, track: TrackRef) -> bool:
    song = Song.query.filter_by(spotify_id=track.id).first()
    if song is None:
        return False
    removed = Favorite.query.filter_by(user_id=user.id, song_id=song.id).delete()
    db.session.commit()
    return bool(removed)


def list_favorites(user: User) -> List[Favorite]:
    return (
        Favorite.query.filter_by(user_id=user.id)
        .order_by(Favorite.created_at.desc(), Favorite.id.desc())
        .all()
    )


def record_play(
    user: User,
    track: TrackRef,
    *,
    now: Optional[datetime] = None,
    window: timedelta = DEFAULT_DEDUPE_WINDOW,
) -> Tuple[PlayHistory, bool]:
    """Append a play unless the same song was recorded for this user within ``window``.

    Returns the relevant row and whether it was newly written.
    """
    now = now or utcnow()
    song = upsert_song(track)
    recent = (
        PlayHistory.query.filter(
            PlayHistory.user_id == user.id,
            PlayHistory.song_id == song.id,
            PlayHistory.played_at >= now - window,
        )
        .order_by(PlayHistory.played_at.desc())
        .first()
    )
    if recent is not None:
        record_play_history(False)
        return recent, False

    entry = PlayHistory(user_id=user.id, song_id=song.id, played_at=now)
    db.session.add(entry)
    db.session.commit()
    record_play_history(True)
    return entry, True


def list_history(user: User, *, limit: int = DEFAULT_HISTORY_LIMIT) -> List[PlayHistory]:
    return (
        PlayHistory.query.filter_by(user_id=user.id)
        .order_by(PlayHistory.played_at.desc(), PlayHistory.id.desc())
        .limit(max(1, limit))
        .all()
    )


__all__ = [
    "get_user",
    "get_or_create_user",
    "upsert_song",
    "add_favorite",
    "remove_favorite",
    "list_favorites",
    "record_play",
    "list_history",
]
