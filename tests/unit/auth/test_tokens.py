import threading

import pytest
from flask import Flask, make_response

from src.auth.tokens import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    USER_ID_COOKIE,
    CookieTokenStore,
    Credential,
    TokenStore,
    clear_session_cookies,
    set_session_cookies,
)


def _set_cookie_headers(response):
    return {header.split("=", 1)[0]: header for header in response.headers.getlist("Set-Cookie")}


@pytest.mark.unit
def test_refresh_keeps_previous_refresh_token_when_not_rotated():
    previous = Credential("old-access", "refresh-1")
    fresh = Credential.from_token_info({"access_token": "new-access"}, previous=previous)
    assert fresh.access_token == "new-access"
    assert fresh.refresh_token == "refresh-1"

    rotated = Credential.from_token_info({"access_token": "a", "refresh_token": "refresh-2"}, previous=previous)
    assert rotated.refresh_token == "refresh-2"


@pytest.mark.unit
def test_credential_from_cookies_requires_access_token():
    assert Credential.from_cookies({REFRESH_TOKEN_COOKIE: "r"}) is None
    cred = Credential.from_cookies({ACCESS_TOKEN_COOKIE: "a", REFRESH_TOKEN_COOKIE: ""})
    assert cred == Credential("a", None)


@pytest.mark.unit
def test_credential_repr_never_contains_tokens():
    text = repr(Credential("secret-access", "secret-refresh"))
    assert "secret" not in text


@pytest.mark.unit
def test_token_store_replace_is_whole_pair():
    store = TokenStore(Credential("a1", "r1"))
    seen = []

    def reader():
        for _ in range(500):
            cred = store.get()
            seen.append((cred.access_token, cred.refresh_token))

    t = threading.Thread(target=reader)
    t.start()
    for i in range(500):
        store.replace(Credential(f"a{i}", f"r{i}"))
    t.join()

    # Every observed pair was written together
    assert all(access[1:] == refresh[1:] for access, refresh in seen)
    assert store.replaced is True


@pytest.mark.unit
def test_cookie_store_writes_only_when_replaced():
    app = Flask(__name__)
    with app.test_request_context():
        store = CookieTokenStore({ACCESS_TOKEN_COOKIE: "a", REFRESH_TOKEN_COOKIE: "r"})
        untouched = make_response("ok")
        store.write_to(untouched, secure=False)
        assert untouched.headers.getlist("Set-Cookie") == []

        store.replace(Credential("a2", "r"))
        response = make_response("ok")
        store.write_to(response, secure=True)
        cookies = _set_cookie_headers(response)
        assert cookies[ACCESS_TOKEN_COOKIE].startswith("access_token=a2")
        assert "HttpOnly" in cookies[ACCESS_TOKEN_COOKIE]
        assert "Secure" in cookies[ACCESS_TOKEN_COOKIE]
        assert "SameSite=Lax" in cookies[ACCESS_TOKEN_COOKIE]
        assert "Path=/" in cookies[ACCESS_TOKEN_COOKIE]


@pytest.mark.unit
def test_session_cookies_set_and_clear():
    app = Flask(__name__)
    with app.test_request_context():
        response = make_response("ok")
        set_session_cookies(response, Credential("a", "r"), "user-9", secure=False)
        cookies = _set_cookie_headers(response)
        assert set(cookies) == {ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, USER_ID_COOKIE}
        assert "Secure" not in cookies[USER_ID_COOKIE]

        cleared = make_response("bye")
        clear_session_cookies(cleared)
        cleared_cookies = _set_cookie_headers(cleared)
        assert set(cleared_cookies) == {ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, USER_ID_COOKIE}
        assert all("Expires=Thu, 01 Jan 1970" in value for value in cleared_cookies.values())
