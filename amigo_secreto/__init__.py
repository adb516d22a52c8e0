from __future__ import annotations

from flask import Flask
from werkzeug.exceptions import HTTPException

from .cli import register_cli
from .config import Config
from .errors import SecretFriendError
from .extensions import db, login_manager, migrate
from .services.draw import STRATEGIES
from .store import init_store
from .views.api import api_bp
from .views.envelope import fail


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__)

    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(app.config["LOG_LEVEL"])

    if app.config["DRAW_STRATEGY"] not in STRATEGIES:
        raise ValueError(f"DRAW_STRATEGY must be one of {STRATEGIES}, got {app.config['DRAW_STRATEGY']!r}")

    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    init_store(app, db)

    # Blueprints
    app.register_blueprint(api_bp, url_prefix=app.config["API_PREFIX"] or None)

    register_error_handlers(app)
    register_cli(app)

    return app


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(SecretFriendError)
    def handle_secret_friend_error(e: SecretFriendError):
        if e.status_code >= 500:
            app.logger.error("Request failed: %s", type(e).__name__)
        extra = {"errors": e.fields} if getattr(e, "fields", None) else {}
        return fail(e.message, status=e.status_code, error=type(e).__name__, **extra)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return fail(e.description or e.name, status=e.code or 500, error=e.name)
