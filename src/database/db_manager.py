# src/database/db_manager.py
from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
import os  # Import os for path handling
import logging
from datetime import datetime, timezone
from sqlalchemy import ForeignKey, UniqueConstraint, Index
from sqlalchemy.engine import make_url
from sqlalchemy.orm import relationship

# Initialize the SQLAlchemy object
db = SQLAlchemy()
logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    # Naive UTC, which is what SQLite round-trips
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    spotify_id = db.Column(db.String(128), unique=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    favorites = relationship(
        "Favorite",
        back_populates="owner",
        cascade="all, delete-orphan",
        lazy=True,
    )
    plays = relationship(
        "PlayHistory",
        back_populates="owner",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def get_id(self) -> str:
        return self.spotify_id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "spotify_id": self.spotify_id,
            "created_at": _iso(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<User {self.spotify_id}>"


class Song(db.Model):
    """Denormalized copy of a provider track, keyed by its Spotify id."""

    __tablename__ = 'songs'

    id = db.Column(db.Integer, primary_key=True)
    spotify_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    artist = db.Column(db.String(512), nullable=False)  # comma-joined artist names
    album = db.Column(db.String(255), nullable=False, default='')
    duration = db.Column(db.Integer, nullable=False, default=0)  # seconds
    image_url = db.Column(db.String(500), nullable=False, default='')
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'spotify_id': self.spotify_id,
            'title': self.title,
            'artist': self.artist,
            'album': self.album,
            'duration': self.duration,
            'image_url': self.image_url,
        }

    def __repr__(self):
        return f'<Song {self.spotify_id}: {self.title} by {self.artist}>'


class Favorite(db.Model):
    __tablename__ = 'favorites'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        ForeignKey('users.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    song_id = db.Column(
        db.Integer,
        ForeignKey('songs.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    owner = relationship('User', back_populates='favorites')
    song = relationship('Song', lazy='joined')

    __table_args__ = (
        UniqueConstraint('user_id', 'song_id', name='uq_favorites_user_song'),
    )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'song_id': self.song_id,
            'created_at': _iso(self.created_at),
            'song': self.song.to_dict() if self.song else None,
        }


class PlayHistory(db.Model):
    """Append-only play log; repeat plays inside the dedupe window are not written."""

    __tablename__ = 'play_history'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        ForeignKey('users.id', ondelete='CASCADE'),
        nullable=False,
    )
    song_id = db.Column(
        db.Integer,
        ForeignKey('songs.id', ondelete='CASCADE'),
        nullable=False,
    )
    played_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    owner = relationship('User', back_populates='plays')
    song = relationship('Song', lazy='joined')

    __table_args__ = (
        Index('ix_play_history_user_song_played', 'user_id', 'song_id', 'played_at'),
        Index('ix_play_history_user_played', 'user_id', 'played_at'),
    )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'song_id': self.song_id,
            'played_at': _iso(self.played_at),
            'song': self.song.to_dict() if self.song else None,
        }


def initialize_database(app):
    """
    Initializes the SQLAlchemy extension with the Flask app instance
    and creates all database tables if they don't already exist.
    """
    db.init_app(app)
    # Ensure the instance folder exists for SQLite database file
    instance_path = app.instance_path
    if not os.path.exists(instance_path):
        os.makedirs(instance_path)
        logger.info("Created instance folder: %s", instance_path)

    # Ensure the directory for the configured SQLite file exists
    try:
        uri = app.config.get('SQLALCHEMY_DATABASE_URI')
        if uri:
            url = make_url(uri)
            # Only handle file-based SQLite (not :memory:)
            if url.get_backend_name() == 'sqlite' and url.database and url.database != ':memory:':
                db_dir = os.path.dirname(url.database)
                if db_dir and not os.path.exists(db_dir):
                    os.makedirs(db_dir, exist_ok=True)
                    logger.info("Created SQLite DB directory: %s", db_dir)
    except Exception as e:
        # Don't block app startup on path parsing issues; log and continue
        logger.warning("Could not ensure SQLite directory exists: %s", e)

    # Create database tables within the application context
    with app.app_context():
        db.create_all()
        logger.info("Database tables created or already exist.")
