# backend/pos/__init__.py
import logging

from flask import Flask, request, jsonify

from .config import Config
from .extensions import db, migrate
from .validation import ConflictError, NotFoundError, ValidationError


def register_error_handlers(app: Flask) -> None:
    """Translate service-layer exceptions into JSON error responses."""

    def _body(exc) -> dict:
        body = {"error": str(exc)}
        details = getattr(exc, "details", None)
        if details:
            body["details"] = details
        return body

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc):
        return jsonify(_body(exc)), 400

    @app.errorhandler(NotFoundError)
    def handle_not_found(exc):
        return jsonify(_body(exc)), 404

    @app.errorhandler(ConflictError)
    def handle_conflict(exc):
        return jsonify(_body(exc)), 409

    @app.errorhandler(500)
    def handle_internal_error(exc):
        db.session.rollback()
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error"}), 500


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    logging.getLogger("pos").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.sales import sales_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(reports_bp)

    register_error_handlers(app)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
