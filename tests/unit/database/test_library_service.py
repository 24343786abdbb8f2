from datetime import timedelta

import pytest

from src.database.db_manager import Favorite, PlayHistory, Song, utcnow
from src.errors import DuplicateFavoriteError
from src.models.dto import TrackRef
from src.services import library
from tests.support.factories import track_payload


def _track(track_id="t1", **kwargs):
    return TrackRef.from_provider(track_payload(track_id, **kwargs))


@pytest.mark.unit
def test_get_or_create_user_is_idempotent(db_session):
    first = library.get_or_create_user("spotify-user")
    second = library.get_or_create_user("spotify-user")
    assert first.id == second.id
    assert library.get_user("missing") is None


@pytest.mark.unit
def test_upsert_song_denormalizes_and_never_overwrites(db_session):
    track = _track("t1", name="One", duration_ms=215999, artists=("A", "B"), album="LP")
    song = library.upsert_song(track)
    assert (song.title, song.artist, song.album, song.duration) == ("One", "A, B", "LP", 215)
    assert song.image_url == "http://images/t1.jpg"

    again = library.upsert_song(_track("t1", name="Renamed"))
    assert again.id == song.id
    assert again.title == "One"
    assert Song.query.count() == 1


@pytest.mark.unit
def test_duplicate_favorite_rejected_and_set_unchanged(db_session, factories):
    user = factories.UserFactory()
    db_session.commit()
    track = _track("t1")

    library.add_favorite(user, track)
    with pytest.raises(DuplicateFavoriteError) as excinfo:
        library.add_favorite(user, track)

    assert excinfo.value.status_code == 409
    assert Favorite.query.filter_by(user_id=user.id).count() == 1


@pytest.mark.unit
def test_remove_favorite_and_listing_order(db_session, factories):
    user = factories.UserFactory()
    db_session.commit()
    library.add_favorite(user, _track("t1"))
    library.add_favorite(user, _track("t2"))

    assert [f.song.spotify_id for f in library.list_favorites(user)] == ["t2", "t1"]
    assert library.remove_favorite(user, _track("t1")) is True
    assert library.remove_favorite(user, _track("t1")) is False
    assert library.remove_favorite(user, _track("never-seen")) is False
    assert [f.song.spotify_id for f in library.list_favorites(user)] == ["t2"]


@pytest.mark.unit
def test_history_dedupes_within_five_minutes(db_session, factories):
    user = factories.UserFactory()
    db_session.commit()
    track = _track("t1")
    start = utcnow()

    _, first = library.record_play(user, track, now=start)
    _, second = library.record_play(user, track, now=start + timedelta(minutes=4))
    assert (first, second) == (True, False)
    assert PlayHistory.query.filter_by(user_id=user.id).count() == 1

    _, third = library.record_play(user, track, now=start + timedelta(minutes=6))
    assert third is True
    assert PlayHistory.query.filter_by(user_id=user.id).count() == 2


@pytest.mark.unit
def test_history_dedupe_is_per_user_and_song(db_session, factories):
    alice, bob = factories.UserFactory(), factories.UserFactory()
    db_session.commit()
    now = utcnow()

    assert library.record_play(alice, _track("t1"), now=now)[1] is True
    assert library.record_play(alice, _track("t2"), now=now)[1] is True
    assert library.record_play(bob, _track("t1"), now=now)[1] is True


@pytest.mark.unit
def test_list_history_most_recent_first_and_capped(db_session, factories):
    user = factories.UserFactory()
    db_session.commit()
    start = utcnow() - timedelta(hours=1)
    for i in range(5):
        library.record_play(user, _track(f"t{i}"), now=start + timedelta(minutes=i))

    entries = library.list_history(user, limit=3)
    assert [e.song.spotify_id for e in entries] == ["t4", "t3", "t2"]
