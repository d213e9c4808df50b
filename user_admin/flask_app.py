"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with all blueprints, error handlers, and configuration.
"""
from __future__ import annotations
import logging
import os

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from user_admin.config import load_settings
from user_admin.core import provisioning_service


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app() -> Flask:
    """Create and configure Flask application."""
    # Load configuration
    cfg = load_settings()

    _configure_logging(cfg.log_level)

    # Create Flask app
    app = Flask(__name__)

    # Store config for easy access in routes
    app.config["APP_CONFIG"] = cfg

    # Upload limits (werkzeug raises 413 above this size)
    app.config["MAX_CONTENT_LENGTH"] = cfg.upload_max_file_size
    os.makedirs(cfg.upload_dir, exist_ok=True)

    # Trust X-Forwarded-* headers from proxy
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    # Bind the service layer to this configuration
    provisioning_service.configure(cfg)

    # Register blueprints
    from user_admin.api import auth, errors, health, users

    app.register_blueprint(health.bp)
    app.register_blueprint(auth.bp)
    app.register_blueprint(users.bp)

    # Register error handlers
    errors.register_error_handlers(app)

    # Log startup info
    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    print(f"[flask_app] Mode={mode_label}")
    print(f"[flask_app] User management API registered at /api/users")

    if cfg.demo_mode:
        print("[flask_app] WARNING: Demo mode active - do not deploy with demo credentials")

    return app


def _configure_logging(level_name: str) -> None:
    """Configure the root handler once; later calls only adjust the level."""
    level = getattr(logging, (level_name or "INFO").upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger().setLevel(level)


# ─────────────────────────────────────────────────────────────────────────────
# Application Instance (for Gunicorn)
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=app.config["APP_CONFIG"].port, debug=True)
