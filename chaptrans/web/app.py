"""Flask application configuration and blueprint registration."""

from __future__ import annotations

from flask import Flask, jsonify

from chaptrans.config import TranslationSettings
from chaptrans.logger import get_logger

from .routes.chapters import chapters_bp

logger = get_logger(__name__)


def build_app(settings: TranslationSettings) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Ensure JSON responses keep Unicode data.
    app.json.ensure_ascii = False
    app.config["CHAPTRANS_SETTINGS"] = settings

    register_blueprints(app)
    register_default_routes(app)

    return app


def register_blueprints(app: Flask) -> None:
    """Register Flask blueprints."""
    app.register_blueprint(chapters_bp, url_prefix="/api")


def register_default_routes(app: Flask) -> None:
    """Register default health route and JSON error handlers."""

    @app.get("/health")
    def health_check():
        logger.debug("Health check requested")
        return jsonify({"status": "ok"})

    @app.errorhandler(404)
    def page_not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    def internal_error(e):
        logger.exception("Internal server error: %s", e)
        return jsonify({"error": "Internal server error"}), 500
