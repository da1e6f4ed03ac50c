# backend/reportflow/__init__.py
import logging

from flask import Flask, request
from sqlalchemy.engine import make_url

from .config import Config, SCOPE_MATCH_MODES, SUPPORTED_DATABASE_BACKENDS
from .extensions import db, migrate


def _check_config(config) -> None:
    mode = config.get("SCOPE_MATCH_MODE")
    if mode not in SCOPE_MATCH_MODES:
        raise ValueError(
            f"SCOPE_MATCH_MODE must be one of: {', '.join(sorted(SCOPE_MATCH_MODES))}"
        )

    # The one-in-flight index is partial; other backends would build it as a plain unique index
    backend = make_url(config["SQLALCHEMY_DATABASE_URI"]).get_backend_name()
    if backend not in SUPPORTED_DATABASE_BACKENDS:
        raise ValueError(
            f"Unsupported database '{backend}'. Use one of: {', '.join(sorted(SUPPORTED_DATABASE_BACKENDS))}"
        )


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)
    _check_config(app.config)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    logging.getLogger("reportflow").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.locations import locations_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(locations_bp)
    app.register_blueprint(reports_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
