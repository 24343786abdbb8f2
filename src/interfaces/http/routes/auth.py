#!/usr/bin/env python
"""Spotify OAuth login/callback and cookie session endpoints."""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, make_response, redirect, request

from src.auth.bootstrap import complete_authorization
from src.auth.tokens import USER_ID_COOKIE, Credential, clear_session_cookies, set_session_cookies
from src.errors import ConfigurationError
from src.interfaces.http.provider import provider, provider_settings
from src.services.library import get_or_create_user

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.route("/login", methods=["GET"])
def login():
    settings = provider_settings()
    try:
        settings.ensure_credentials()
    except ConfigurationError as exc:
        logger.error("Login requested without Spotify credentials: %s", ", ".join(exc.missing))
        return jsonify({"error": "Spotify API credentials not set"}), 500
    return redirect(provider().oauth.authorize_url())


@auth_bp.route("/callback", methods=["GET"])
def callback():
    result = complete_authorization(
        provider(),
        code=request.args.get("code"),
        error=request.args.get("error"),
    )
    get_or_create_user(result.user_id)

    settings = provider_settings()
    response = make_response(redirect(settings.post_login_redirect))
    set_session_cookies(response, result.credential, result.user_id, secure=settings.cookie_secure)
    logger.info("Spotify login completed")
    return response


@auth_bp.route("/session", methods=["GET"])
def session_info():
    if Credential.from_cookies(request.cookies) is not None:
        return jsonify({"authenticated": True}), 200
    return jsonify({"authenticated": False}), 401


@auth_bp.route("/me", methods=["GET"])
def me():
    user_id = request.cookies.get(USER_ID_COOKIE)
    if not user_id:
        return jsonify({"error": "User ID not found"}), 404
    return jsonify({"userId": user_id}), 200


@auth_bp.route("/token", methods=["GET"])
def access_token():
    # The browser playback engine needs the raw access token for its token callback
    credential = Credential.from_cookies(request.cookies)
    if credential is None:
        return jsonify({"error": "Not authenticated"}), 401
    return jsonify({"accessToken": credential.access_token}), 200


@auth_bp.route("/logout", methods=["POST"])
def logout():
    response = jsonify({"success": True})
    clear_session_cookies(response)
    return response, 200


__all__ = ["auth_bp"]
