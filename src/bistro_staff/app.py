"""
Factory for the staff-facing Flask API.

Uses JWT bearer tokens for authentication instead of server-side sessions.
"""

from __future__ import annotations

import os

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from bistro_shared.config import AppConfig, load_config
from bistro_shared.db import Store
from bistro_shared.error_handlers import register_error_handlers
from bistro_shared.jwt_middleware import init_jwt_middleware
from bistro_shared.logging_config import configure_logging, get_logger
from bistro_shared.services.order_state_machine import OrderStateMachine
from bistro_shared.services.seed import ensure_seed_data

from .cli import register_cli
from .extensions import init_extensions

logger = get_logger(__name__)


def create_app(config: AppConfig | None = None, store: Store | None = None) -> Flask:
    """
    Build the Flask application that powers the staff and admin screens.

    Args:
        config: Explicit settings; read from the environment when omitted.
        store: Pre-built store, e.g. an in-memory one in tests.
    """
    config = config or load_config("bistro-staff")
    configure_logging(config.app_name, config.log_level)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.secret_key
    app.config["APP_NAME"] = config.app_name
    app.config["DEBUG"] = config.debug_mode
    app.config["CURRENCY"] = config.currency
    app.config["REPORT_TOP_N"] = config.default_report_top_n
    app.config["ORDER_TRANSITION_POLICY"] = config.order_transition_policy
    app.config["JWT_ACCESS_TOKEN_EXPIRES_HOURS"] = config.jwt_access_token_expires_hours

    store = store or Store.from_config(config)
    store.create_schema()
    if config.load_seed_data:
        ensure_seed_data(store)

    init_extensions(app, store, OrderStateMachine(config.order_transition_policy))
    init_jwt_middleware(app)
    register_error_handlers(app)
    register_cli(app)

    # Trust X-Forwarded-* headers when running behind a reverse proxy
    num_proxies = int(os.getenv("NUM_PROXIES", "0"))
    if num_proxies > 0:
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=num_proxies,
            x_proto=num_proxies,
            x_host=num_proxies,
            x_port=num_proxies,
        )

    from .routes.api import api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    logger.info(
        "Application started",
        extra={
            "app_name": config.app_name,
            "dialect": store.dialect,
            "transition_policy": config.order_transition_policy,
        },
    )
    return app
