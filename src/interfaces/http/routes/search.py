"""Search and single-track lookup proxied to the Spotify Web API."""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from src.interfaces.http.provider import spotify_api

search_bp = Blueprint("search_bp", __name__, url_prefix="/api")


@search_bp.route("/search", methods=["GET"])
def search():
    query = (request.args.get("q") or "").strip()
    if not query:
        return jsonify({"error": 'Query parameter "q" is required'}), 400
    offset = max(0, request.args.get("offset", default=0, type=int) or 0)
    return jsonify(spotify_api().search_tracks(query, offset=offset)), 200


@search_bp.route("/track", methods=["GET"])
def track():
    track_id = (request.args.get("id") or "").strip()
    if not track_id:
        return jsonify({"error": "Track ID is required"}), 400
    return jsonify(spotify_api().track(track_id)), 200


__all__ = ["search_bp"]
