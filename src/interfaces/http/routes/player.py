"""Playback commands: start a list, play one track, pause and enqueue."""

from __future__ import annotations

from flask import Blueprint, jsonify

from src.models.dto import PlayRequest, QueueRequest, SingleTrackPlayRequest
from src.interfaces.http.provider import parse_body, spotify_api

player_bp = Blueprint("player_bp", __name__, url_prefix="/api")


@player_bp.route("/play", methods=["POST"])
def play():
    payload = parse_body(PlayRequest)
    spotify_api().start_playback(
        payload.uris,
        offset=payload.offset.position if payload.offset else None,
        device_id=payload.device_id,
    )
    return jsonify({"success": True}), 200


@player_bp.route("/player/play", methods=["POST"])
def play_track():
    payload = parse_body(SingleTrackPlayRequest)
    spotify_api().start_playback([payload.track_uri], device_id=payload.device_id)
    return jsonify({"message": "Playing track"}), 200


@player_bp.route("/player/pause", methods=["POST"])
def pause():
    spotify_api().pause()
    return jsonify({"message": "Playback paused"}), 200


@player_bp.route("/queue", methods=["POST"])
def enqueue():
    payload = parse_body(QueueRequest)
    spotify_api().enqueue(payload.uri, device_id=payload.device_id)
    return jsonify({"success": True}), 200


__all__ = ["player_bp"]
