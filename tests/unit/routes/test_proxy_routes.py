import pytest

from src.errors import TokenExchangeFailure
from tests.support.factories import track_payload
from tests.support.stubs import FakeResponse, search_response, token_response


def _set_cookies(response):
    return {header.split("=", 1)[0]: header for header in response.headers.getlist("Set-Cookie")}


@pytest.mark.unit
def test_search_without_cookie_is_401_and_never_calls_upstream(client, spotify, fake_session):
    response = client.get("/api/search?q=daft+punk")
    assert response.status_code == 401
    assert response.get_json() == {"error": "Not authenticated"}
    assert fake_session.calls == []


@pytest.mark.unit
def test_search_requires_query(logged_in, spotify, fake_session):
    response = logged_in.get("/api/search")
    assert response.status_code == 400
    assert response.get_json() == {"error": 'Query parameter "q" is required'}
    assert fake_session.calls == []


@pytest.mark.unit
def test_search_passes_through_provider_result(logged_in, spotify, fake_session):
    fake_session.add("GET", "/v1/search", search_response(track_payload("t1"), total=40, offset=15))

    response = logged_in.get("/api/search?q=daft%20punk&offset=15")

    assert response.status_code == 200
    assert response.get_json()["tracks"]["items"][0]["id"] == "t1"
    (call,) = fake_session.calls
    assert call.params == {"q": "daft punk", "type": "track", "limit": 15, "offset": 15}
    assert call.headers["Authorization"] == "Bearer access-1"
    assert response.headers.getlist("Set-Cookie") == []


@pytest.mark.unit
def test_expired_token_refreshes_once_and_updates_cookie(app, logged_in, fake_session):
    # Real OAuth client, fake HTTP underneath
    from src.clients.gateway import SpotifyProvider

    app.extensions["spotify"] = SpotifyProvider(app.extensions["provider_settings"], session=fake_session)
    fake_session.add("POST", "/api/token", token_response("access-2"))
    fake_session.add("GET", "/v1/search", FakeResponse(401, {"error": "expired"}), search_response(track_payload("t1")))

    response = logged_in.get("/api/search?q=daft+punk")

    assert response.status_code == 200
    assert response.get_json()["tracks"]["items"][0]["id"] == "t1"
    assert len(fake_session.calls_to("/api/token")) == 1
    cookies = _set_cookies(response)
    assert cookies["access_token"].startswith("access_token=access-2")
    assert "HttpOnly" in cookies["access_token"]


@pytest.mark.unit
def test_refresh_failure_is_401_and_cookie_untouched(logged_in, spotify, fake_session, stub_oauth):
    stub_oauth.refresh_error = TokenExchangeFailure()
    fake_session.add("GET", "/v1/search", FakeResponse(401))

    response = logged_in.get("/api/search?q=x")

    assert response.status_code == 401
    assert response.get_json() == {"error": "Failed to refresh access token"}
    assert response.headers.getlist("Set-Cookie") == []


@pytest.mark.unit
def test_upstream_error_is_propagated_with_status_and_detail(logged_in, spotify, fake_session):
    fake_session.add("GET", "/v1/tracks/t1", FakeResponse(404, {"error": {"status": 404, "message": "missing"}}))
    response = logged_in.get("/api/track?id=t1")
    assert response.status_code == 404
    assert response.get_json() == {
        "error": "Spotify API error",
        "detail": {"error": {"status": 404, "message": "missing"}},
    }


@pytest.mark.unit
def test_track_lookup(logged_in, spotify, fake_session):
    assert logged_in.get("/api/track").get_json() == {"error": "Track ID is required"}
    fake_session.add("GET", "/v1/tracks/t1", FakeResponse(200, track_payload("t1")))
    response = logged_in.get("/api/track?id=t1")
    assert response.status_code == 200
    assert response.get_json()["uri"] == "spotify:track:t1"


@pytest.mark.unit
def test_play_sends_uri_list_offset_and_device(logged_in, spotify, fake_session):
    fake_session.add("PUT", "/v1/me/player/play", FakeResponse(204))
    uris = [f"spotify:track:t{i}" for i in range(5)]

    response = logged_in.post("/api/play", json={"uris": uris, "offset": {"position": 2}, "deviceId": "dev-1"})

    assert response.status_code == 200
    assert response.get_json() == {"success": True}
    (call,) = fake_session.calls
    assert call.body == {"uris": uris, "offset": {"position": 2}}
    assert call.params == {"device_id": "dev-1"}


@pytest.mark.unit
def test_play_validates_body(logged_in, spotify, fake_session):
    assert logged_in.post("/api/play", json={"uris": []}).status_code == 400
    assert logged_in.post("/api/play", data="nope", content_type="text/plain").status_code == 400
    assert fake_session.calls == []


@pytest.mark.unit
def test_single_track_play_pause_and_queue(logged_in, spotify, fake_session):
    fake_session.add("PUT", "/v1/me/player/play", FakeResponse(204))
    fake_session.add("PUT", "/v1/me/player/pause", FakeResponse(204))
    fake_session.add("POST", "/v1/me/player/queue", FakeResponse(204))

    assert logged_in.post("/api/player/play", json={"trackUri": "spotify:track:1"}).get_json() == {
        "message": "Playing track"
    }
    assert logged_in.post("/api/player/pause").get_json() == {"message": "Playback paused"}
    assert logged_in.post("/api/queue", json={"uri": "spotify:track:2"}).get_json() == {"success": True}

    play, pause, queue = fake_session.calls
    assert play.body == {"uris": ["spotify:track:1"]}
    assert pause.method == "PUT"
    assert queue.params == {"uri": "spotify:track:2"}
