"""Play history: append with the short dedupe window, list most recent first."""

from __future__ import annotations

from datetime import timedelta

from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from src.interfaces.http.provider import parse_body
from src.models.dto import PlayHistoryRequest
from src.services import library

history_bp = Blueprint('history_bp', __name__, url_prefix='/api/play-history')


@history_bp.route('', methods=['POST'])
@login_required
def record_play():
    payload = parse_body(PlayHistoryRequest)
    window = timedelta(seconds=current_app.config.get('PLAY_HISTORY_DEDUPE_SECONDS', 300))
    entry, created = library.record_play(current_user, payload.track, window=window)
    if not created:
        return jsonify({'success': False, 'message': 'Already played recently'}), 200
    return jsonify({'success': True, 'playHistory': entry.to_dict()}), 201


@history_bp.route('', methods=['GET'])
@login_required
def list_history():
    limit = current_app.config.get('PLAY_HISTORY_LIMIT', library.DEFAULT_HISTORY_LIMIT)
    entries = library.list_history(current_user, limit=limit)
    return jsonify({'playHistory': [entry.to_dict() for entry in entries]}), 200


__all__ = ['history_bp']
