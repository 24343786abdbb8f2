"""Favorite songs for the cookie-identified user."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from src.interfaces.http.provider import parse_body
from src.models.dto import FavoriteRequest
from src.services import library


favorite_bp = Blueprint('favorite_bp', __name__, url_prefix='/api/favorite')


@favorite_bp.route('', methods=['GET'])
@login_required
def list_favorites():
    favorites = library.list_favorites(current_user)
    return jsonify({'favorites': [fav.to_dict() for fav in favorites]}), 200


@favorite_bp.route('', methods=['POST'])
@login_required
def update_favorite():
    payload = parse_body(FavoriteRequest)

    if payload.action == 'remove':
        removed = library.remove_favorite(current_user, payload.track)
        if not removed:
            return jsonify({'error': 'Favorite not found'}), 404
        return jsonify({'success': True}), 200

    # DuplicateFavoriteError surfaces as 409 through the error handlers
    favorite = library.add_favorite(current_user, payload.track)
    return jsonify({'success': True, 'favorite': favorite.to_dict()}), 201


__all__ = ['favorite_bp']
