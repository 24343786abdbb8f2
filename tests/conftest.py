import os
import sys

import pytest

# Ensure project root is on sys.path so 'app', 'config', and 'src' import correctly
_TESTS_DIR = os.path.dirname(__file__)
_ROOT_DIR = os.path.abspath(os.path.join(_TESTS_DIR, os.pardir))
if _ROOT_DIR not in sys.path:
    sys.path.insert(0, _ROOT_DIR)

from tests.support import factories as test_factories
from tests.support import stubs as test_stubs


TEST_CONFIG = {
    "TESTING": True,
    "SECRET_KEY": "test-secret",
    "SPOTIFY_CLIENT_ID": "test-client-id",
    "SPOTIFY_CLIENT_SECRET": "test-client-secret",
    "SPOTIFY_REDIRECT_URI": "http://localhost:5000/api/auth/callback",
    "SPOTIFY_API_BASE_URL": "https://api.spotify.com/v1",
    "SPOTIFY_ACCOUNTS_BASE_URL": "https://accounts.spotify.com",
    "PUBLIC_BASE_URL": "http://localhost:3000/",
    "SESSION_COOKIE_SECURE": False,
    "SEARCH_PAGE_SIZE": 15,
    "PLAY_HISTORY_LIMIT": 100,
    "PLAY_HISTORY_DEDUPE_SECONDS": 300,
}


@pytest.fixture
def app_config(tmp_path):
    """Per-test config with its own sqlite file."""
    config = dict(TEST_CONFIG)
    config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{(tmp_path / 'test.sqlite').as_posix()}"
    return config


@pytest.fixture
def app(app_config):
    import app as app_module

    application = app_module.create_app(app_config)
    yield application


@pytest.fixture
def app_context(app):
    with app.app_context():
        yield app


@pytest.fixture
def db_session(app_context):
    from src.database.db_manager import db

    test_factories.set_session(db.session)
    try:
        yield db.session
    finally:
        db.session.rollback()
        db.session.remove()
        test_factories.reset_session()


@pytest.fixture
def factories(db_session):
    yield test_factories


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def fake_session():
    return test_stubs.FakeSession()


@pytest.fixture
def stub_oauth():
    return test_stubs.StubOAuth()


@pytest.fixture
def spotify(app, fake_session, stub_oauth):
    """Swap the app's provider for one backed by the fake HTTP session and OAuth stub."""
    from src.clients.gateway import SpotifyProvider

    provider = SpotifyProvider(app.extensions["provider_settings"], session=fake_session, oauth=stub_oauth)
    app.extensions["spotify"] = provider
    return provider


@pytest.fixture
def logged_in(client):
    """Browser cookies for an authenticated session."""
    client.set_cookie("access_token", "access-1")
    client.set_cookie("refresh_token", "refresh-1")
    client.set_cookie("spotify_id", "user-1")
    return client
