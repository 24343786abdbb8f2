"""Route blueprints exposed via Flask."""

from .auth import auth_bp
from .search import search_bp
from .player import player_bp
from .favorites import favorite_bp
from .history import history_bp
from .health import health_bp

__all__ = [
    "auth_bp",
    "search_bp",
    "player_bp",
    "favorite_bp",
    "history_bp",
    "health_bp",
]
