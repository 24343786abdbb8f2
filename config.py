#!/usr/bin/env python
# config.py
import os
from typing import List

# This assumes config.py is at the root of your project
basedir = os.path.abspath(os.path.dirname(__file__))


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _get_csv_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name)
    source = raw if raw is not None else default
    return [token.strip() for token in source.split(",") if token and token.strip()]


APP_ENV = os.getenv('APP_ENV', 'development').strip().lower()


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-only-secret-key'
    APP_ENV = APP_ENV

    # Database: users, songs, favorites and play history
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'src', 'database', 'instance', 'musicclient.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Spotify OAuth (authorization-code flow)
    SPOTIFY_CLIENT_ID = os.environ.get('SPOTIFY_CLIENT_ID')
    SPOTIFY_CLIENT_SECRET = os.environ.get('SPOTIFY_CLIENT_SECRET')
    SPOTIFY_REDIRECT_URI = os.environ.get('SPOTIFY_REDIRECT_URI')
    SPOTIFY_SCOPES = os.getenv(
        'SPOTIFY_SCOPES',
        'streaming user-read-playback-state user-modify-playback-state user-read-email user-read-private',
    )
    SPOTIFY_API_BASE_URL = os.getenv('SPOTIFY_API_BASE_URL', 'https://api.spotify.com/v1')
    SPOTIFY_ACCOUNTS_BASE_URL = os.getenv('SPOTIFY_ACCOUNTS_BASE_URL', 'https://accounts.spotify.com')
    # Where the browser lands after a successful login
    PUBLIC_BASE_URL = os.getenv('PUBLIC_BASE_URL', '/')

    # Provider calls never hang forever
    PROVIDER_REQUEST_TIMEOUT_SECONDS = _get_float('PROVIDER_REQUEST_TIMEOUT_SECONDS', 10.0)

    SEARCH_PAGE_SIZE = max(1, min(50, _get_int('SEARCH_PAGE_SIZE', 15)))
    PLAY_HISTORY_LIMIT = max(1, _get_int('PLAY_HISTORY_LIMIT', 100))
    PLAY_HISTORY_DEDUPE_SECONDS = max(0, _get_int('PLAY_HISTORY_DEDUPE_SECONDS', 300))

    # Session cookies are secure in production only
    SESSION_COOKIE_SECURE = _get_bool('SESSION_COOKIE_SECURE', APP_ENV == 'production')

    CORS_ALLOWED_ORIGINS = _get_csv_list('CORS_ALLOWED_ORIGINS', 'http://localhost:3000')

    # Runtime behavior
    DEBUG = _get_bool('DEBUG', False)
    # Control console logging; when disabled, logs go only to file
    ENABLE_CONSOLE_LOGS = _get_bool('ENABLE_CONSOLE_LOGS', False)

    # Observability
    OTEL_EXPORTER_OTLP_ENDPOINT = os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT')
    OTEL_EXPORTER_OTLP_HEADERS = os.getenv('OTEL_EXPORTER_OTLP_HEADERS')
    OTEL_EXPORTER_OTLP_INSECURE = _get_bool('OTEL_EXPORTER_OTLP_INSECURE', True)
    OTEL_SERVICE_NAME = os.getenv('OTEL_SERVICE_NAME', 'music-client')
