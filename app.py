import os
import logging
from datetime import datetime
from uuid import uuid4

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from flask import Flask, request, g
from flask_cors import CORS

from config import Config
from src.auth import init_auth
from src.clients.gateway import SpotifyProvider
from src.database.db_manager import initialize_database
from src.interfaces.http.errors import register_error_handlers
from src.interfaces.http.routes import (
    auth_bp,
    search_bp,
    player_bp,
    favorite_bp,
    history_bp,
    health_bp,
)
from src.observability import configure_structured_logging, metrics_blueprint, init_tracing
from src.settings import load_provider_settings


logger = logging.getLogger(__name__)


def configure_logging(log_dir: str, enable_console: bool = False) -> str:
    """
    Configure root logging with:
      - FileHandler (INFO+) to a new file per run: log-YYYY-MM-DD-HH-MM-SS
      - StreamHandler (WARNING+) to console when enabled
      - Werkzeug/Flask loggers routed to root

    Returns the path to the created log file.
    """
    os.makedirs(log_dir, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
    log_path = os.path.join(log_dir, f"log-{timestamp}")

    root = logging.getLogger()
    root.setLevel(logging.INFO)

    # Preserve structured handlers; remove existing FileHandlers to avoid duplicates
    root.handlers = [h for h in root.handlers if not isinstance(h, logging.FileHandler)]

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    file_handler = logging.FileHandler(log_path, encoding='utf-8')
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    if enable_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    for name in ("werkzeug", "flask.app"):
        _l = logging.getLogger(name)
        _l.setLevel(logging.INFO)
        _l.handlers = []
        _l.propagate = True

    return log_path


def create_app(test_config=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    configure_structured_logging(app)
    init_tracing(app)

    @app.before_request
    def _assign_request_id():
        g.request_id = request.headers.get('X-Request-ID') or uuid4().hex

    @app.after_request
    def _inject_request_id(response):
        if getattr(g, 'request_id', None):
            response.headers.setdefault('X-Request-ID', g.request_id)
        return response

    allowed_origins = sorted({
        origin.strip()
        for origin in app.config.get('CORS_ALLOWED_ORIGINS', ())
        if origin and origin.strip() and origin.strip() != "*"
    })
    CORS(
        app,
        resources={r"/api/*": {"origins": allowed_origins}},
        supports_credentials=True,
    )

    initialize_database(app)
    init_auth(app)
    register_error_handlers(app)

    # One settings object for the whole process, passed explicitly to the provider layer
    provider_settings = load_provider_settings(app.config)
    app.extensions['provider_settings'] = provider_settings
    app.extensions['spotify'] = SpotifyProvider(provider_settings)
    if not provider_settings.has_credentials:
        app.logger.warning(
            "Spotify credentials incomplete; missing %s",
            ", ".join(provider_settings.missing_credentials()),
        )

    app.register_blueprint(auth_bp)
    app.register_blueprint(search_bp)
    app.register_blueprint(player_bp)
    app.register_blueprint(favorite_bp)
    app.register_blueprint(history_bp)
    app.register_blueprint(health_bp)
    app.register_blueprint(metrics_blueprint)

    return app


if __name__ == '__main__':
    # In debug with the reloader, only the child process configures file logging
    debug_mode = bool(Config.DEBUG)
    log_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'src', 'log')
    if not debug_mode or os.environ.get('WERKZEUG_RUN_MAIN') == 'true':
        log_file_path = configure_logging(log_dir, enable_console=Config.ENABLE_CONSOLE_LOGS)
        logger.info("File logging initialized at %s", log_file_path)

    app = create_app()
    app.run(debug=debug_mode, port=int(os.getenv('PORT', '5000')))
