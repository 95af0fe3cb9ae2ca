"""Application initialization / wiring.

Orchestrates: Flask app creation, extensions, DB init, the process-wide
cover resolver, template filters and route registration.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from bookclub import config as app_config
from bookclub.db import init_engine_once
from bookclub.routes.inject import register_all as register_routes
from bookclub.services.catalog_service import format_file_size
from bookclub.services.cover_resolver import get_resolver
from bookclub.startup.extensions import babel, csrf
from bookclub.utils.identity import is_admin_user, is_authenticated
from bookclub.utils.logging import get_logger

LOG = get_logger("bookclub.startup")


def _register_template_helpers(app: Any) -> None:
    if getattr(app, "_bookclub_template_helpers", False):
        return
    app.add_template_filter(format_file_size, "filesize")

    @app.context_processor
    def _identity_context():
        return {
            "signed_in": is_authenticated(),
            "is_admin": is_admin_user(),
            "app_meta": app_config.metadata(),
        }

    setattr(app, "_bookclub_template_helpers", True)


def _init_extensions(app: Any) -> None:
    if getattr(app, "_bookclub_extensions", False):
        return
    app.config.setdefault("BABEL_DEFAULT_LOCALE", "en")
    babel.init_app(app)
    csrf.init_app(app)
    setattr(app, "_bookclub_extensions", True)


def init_app(app: Any) -> None:
    LOG.debug("init_app starting")
    init_engine_once()
    LOG.debug("DB engine initialized")
    _init_extensions(app)
    resolver = get_resolver()
    LOG.debug("Cover resolver providers=%s", [source.name for source in resolver.sources])
    _register_template_helpers(app)
    register_routes(app)
    LOG.info("App startup wiring complete config=%s", app_config.summarize_runtime_config())


def create_app(config_overrides: Optional[Dict[str, Any]] = None) -> Flask:
    app = Flask("bookclub", template_folder="templates")
    app.config["SECRET_KEY"] = app_config.secret_key()
    app.config["JSON_SORT_KEYS"] = False
    if config_overrides:
        app.config.update(config_overrides)
    hops = app_config.proxy_hops()
    if hops:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops)
    init_app(app)
    return app


__all__ = ["create_app", "init_app"]
