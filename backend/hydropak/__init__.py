# backend/hydropak/__init__.py
import logging

from flask import Flask, request, current_app
from werkzeug.exceptions import HTTPException

from .config import Config
from .extensions import db, migrate
from .validation import ValidationError, ConflictError, NotFoundError


def create_app(test_config=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Invoice PDF backends; tests inject fakes through test_config
    from .services.storage_service import build_invoice_storage
    from .services.pdf_service import ChromiumRenderer

    app.extensions["invoice_storage"] = app.config.get("INVOICE_STORAGE") or build_invoice_storage(app.config)
    app.extensions["pdf_renderer"] = app.config.get("PDF_RENDERER") or ChromiumRenderer(
        app.config.get("CHROMIUM_EXECUTABLE_PATH")
    )

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.customers import customers_bp
    from .routes.products import products_bp
    from .routes.orders import orders_bp
    from .routes.invoices import invoices_bp
    from .routes.analytics import analytics_bp
    from .routes.dashboard import dashboard_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(dashboard_bp)

    register_error_handlers(app)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in app.config["FRONTEND_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = (
                "Authorization, Content-Type, Accept, X-Debug-User, X-Debug-Email"
            )
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def register_error_handlers(app: Flask) -> None:
    """JSON bodies for anything a route did not translate itself."""

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return e.to_dict(), 400

    @app.errorhandler(NotFoundError)
    def handle_not_found(e):
        return {"error": str(e)}, 404

    @app.errorhandler(ConflictError)
    def handle_conflict(e):
        return {"error": str(e)}, 409

    from .services.auth_service import AuthError

    @app.errorhandler(AuthError)
    def handle_auth_error(e):
        return {"error": str(e) or "Unauthorized"}, 401

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return {"error": e.name}, e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return {"error": "Internal server error"}, 500
