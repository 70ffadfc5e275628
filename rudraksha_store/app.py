import logging

from flask import Flask
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from . import auth, cart, catalog, checkout, content, locations, uploads, wishlist
from .config import Config
from .extensions import cors, mongo
from .helpers import ApiError, api_response, error_response
from .schemas import validation_messages
from .seed import seed_command


def create_app(overrides=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(getattr(logging, app.config["LOG_LEVEL"], logging.INFO))

    # --- Initialize extensions ---
    mongo.init_app(app, connect=False)
    origins = [o.strip() for o in app.config["CORS_ORIGINS"].split(",") if o.strip()] or "*"
    cors.init_app(app, resources={r"/api/*": {"origins": origins}})

    for module in (auth, catalog, content, locations, cart, wishlist, checkout, uploads):
        app.register_blueprint(module.bp)

    register_error_handlers(app)
    app.cli.add_command(seed_command)

    @app.route("/")
    def index():
        return api_response("Rudraksha store API running")

    @app.route("/api/health")
    def health():
        """Pings MongoDB so deploys can check the connection."""
        try:
            mongo.cx.admin.command("ping")
        except Exception as e:
            app.logger.error(f"MongoDB ping failed: {e}")
            return error_response("Database unavailable", 503, str(e))
        return api_response("OK", {"database": "connected"})

    return app


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(e):
        if e.status >= 500:
            app.logger.error(f"{e.status} {e.message}: {e.details}")
        return error_response(e.message, e.status, e.details)

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return error_response("Invalid request format", 400, ", ".join(validation_messages(e)))

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        if e.code == 413:
            return error_response("File size exceeds the upload limit", 413)
        return error_response(e.name, e.code, e.description)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        app.logger.error(f"Unhandled error: {e}", exc_info=e)
        return error_response("Internal server error", 500, str(e))
