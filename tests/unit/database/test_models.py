import os

import pytest
from flask import Flask
from sqlalchemy.exc import IntegrityError


@pytest.mark.unit
def test_initialize_database_in_memory_only_creates_instance_dir(tmp_path, monkeypatch):
    from src.database.db_manager import initialize_database

    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    instance_dir = tmp_path / "instance"
    app.instance_path = str(instance_dir)

    calls = []
    real_makedirs = os.makedirs

    def tracing_makedirs(path, *args, **kwargs):
        calls.append(os.path.abspath(path))
        return real_makedirs(path, *args, **kwargs)

    monkeypatch.setattr(os, "makedirs", tracing_makedirs)

    initialize_database(app)

    assert instance_dir.exists()
    assert calls == [os.path.abspath(str(instance_dir))]


@pytest.mark.unit
def test_initialize_database_creates_sqlite_directory(tmp_path):
    from src.database.db_manager import initialize_database

    app = Flask(__name__)
    db_file = tmp_path / "nested" / "dir" / "app.sqlite"
    app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{db_file.as_posix()}"
    app.instance_path = str(tmp_path / "instance")

    initialize_database(app)

    assert db_file.parent.exists()


@pytest.mark.unit
def test_song_spotify_id_is_unique(db_session, factories):
    from src.database.db_manager import Song

    song = factories.SongFactory(spotify_id="sp-1", title="Title", artist="A, B")
    db_session.commit()
    assert song.to_dict()["artist"] == "A, B"

    db_session.add(factories.SongFactory.build(spotify_id="sp-1", title="Other", artist="X"))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()

    assert Song.query.filter_by(spotify_id="sp-1").count() == 1


@pytest.mark.unit
def test_favorite_pair_is_unique(db_session, factories):
    favorite = factories.FavoriteFactory()
    db_session.commit()

    db_session.add(factories.FavoriteFactory.build(owner=favorite.owner, song=favorite.song))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


@pytest.mark.unit
def test_history_to_dict_embeds_song(db_session, factories):
    entry = factories.PlayHistoryFactory()
    db_session.commit()

    data = entry.to_dict()
    assert data["song"]["spotify_id"] == entry.song.spotify_id
    assert data["played_at"].startswith(str(entry.played_at.year))
    assert entry.owner.get_id() == entry.owner.spotify_id
