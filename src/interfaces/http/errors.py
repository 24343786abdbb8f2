"""JSON error responses for the service's exception taxonomy."""

from __future__ import annotations

import logging

from flask import jsonify
from pydantic import ValidationError

from src.errors import ConfigurationError, MusicClientError

logger = logging.getLogger(__name__)


def _validation_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


def register_error_handlers(app) -> None:
    @app.errorhandler(MusicClientError)
    def _handle_music_client_error(exc: MusicClientError):
        if isinstance(exc, ConfigurationError):
            logger.error("Configuration error: missing %s", ", ".join(exc.missing) or "values")
        elif exc.status_code >= 500:
            logger.warning("%s: %s", type(exc).__name__, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(ValidationError)
    def _handle_validation_error(exc: ValidationError):
        return jsonify({"error": _validation_message(exc)}), 400


__all__ = ["register_error_handlers"]
