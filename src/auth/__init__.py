#!/usr/bin/env python
"""Cookie-backed identity, request token stores and Flask-Login integration."""

from __future__ import annotations

from flask import current_app, g, jsonify, request
from flask_login import LoginManager

from src.auth.tokens import USER_ID_COOKIE, CookieTokenStore

login_manager = LoginManager()
login_manager.login_message = None


def request_token_store() -> CookieTokenStore:
    """Token store for the current request, built once from its cookies."""
    store = g.get("token_store")
    if store is None:
        store = CookieTokenStore(request.cookies)
        g.token_store = store
    return store


def init_auth(app):
    """Attach Flask-Login to the app and persist refreshed tokens on every response."""
    from src.services.library import get_or_create_user

    login_manager.init_app(app)

    @login_manager.request_loader
    def load_user_from_cookie(req):
        spotify_id = req.cookies.get(USER_ID_COOKIE)
        if not spotify_id:
            return None
        return get_or_create_user(spotify_id)

    @login_manager.unauthorized_handler
    def _unauthorized():
        return jsonify({"error": "Not authenticated"}), 401

    @app.after_request
    def _persist_refreshed_tokens(response):
        store = g.get("token_store")
        if store is not None:
            store.write_to(response, secure=current_app.config.get("SESSION_COOKIE_SECURE", False))
        return response

    return login_manager


__all__ = ["login_manager", "init_auth", "request_token_store"]
