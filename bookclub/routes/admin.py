"""Admin endpoints: schema upgrade trigger and configuration debug view."""
from __future__ import annotations

import hmac
import threading
from typing import Any, Optional

from flask import Blueprint, jsonify, request
from sqlalchemy import text

from bookclub import config as app_config
from bookclub.db import app_session
from bookclub.services import schema_migrations
from bookclub.services.rate_limiter import SlidingWindowLimiter
from bookclub.startup.extensions import csrf
from bookclub.utils.identity import admin_required, login_required
from bookclub.utils.logging import get_logger

LOG = get_logger("admin_routes")

bp = Blueprint("bookclub_admin", __name__, url_prefix="/api")

_LIMITER: Optional[SlidingWindowLimiter] = None
_LIMITER_LOCK = threading.Lock()


def _schema_limiter() -> SlidingWindowLimiter:
    global _LIMITER
    with _LIMITER_LOCK:
        if _LIMITER is None:
            _LIMITER = SlidingWindowLimiter(
                app_config.schema_update_rate_limit(),
                app_config.schema_update_rate_window_seconds(),
            )
        return _LIMITER


def reset_schema_limiter() -> None:
    global _LIMITER
    with _LIMITER_LOCK:
        _LIMITER = None


def _client_ip() -> str:
    # forwarded headers are honoured only through ProxyFix (BOOKCLUB_PROXY_HOPS)
    return request.remote_addr or "unknown"


def _secret_matches(provided: Any, expected: str) -> bool:
    if not isinstance(provided, str) or not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


@bp.route("/admin/update-schema", methods=["POST"])
@csrf.exempt
@login_required
def update_schema():
    ip = _client_ip()
    if not _schema_limiter().hit(ip):
        LOG.warning("Schema update rate limited ip=%s", ip)
        return jsonify({"error": "too_many_requests"}), 429
    expected = app_config.admin_secret()
    if not expected:
        return jsonify({"error": "admin_secret_not_configured"}), 503
    body = request.get_json(silent=True) or {}
    if not _secret_matches(body.get("adminSecret"), expected):
        LOG.warning("Schema update rejected: bad admin secret ip=%s", ip)
        return jsonify({"error": "invalid_admin_secret"}), 403
    try:
        report = schema_migrations.run_migrations()
    except schema_migrations.MigrationError as exc:
        return jsonify({"error": str(exc)}), 500
    return jsonify({"success": True, **report})


def _database_status() -> str:
    try:
        with app_session() as session:
            session.execute(text("SELECT 1"))
    except Exception as exc:
        LOG.debug("Debug DB probe failed: %s", exc)
        return "error"
    return "connected"


@bp.route("/debug", methods=["GET"])
@admin_required
def debug():
    return jsonify({
        "environment": app_config.summarize_runtime_config(),
        "database": _database_status(),
    })


def register_admin(app: Any) -> None:
    if getattr(app, "_bookclub_admin", False):
        return
    app.register_blueprint(bp)
    setattr(app, "_bookclub_admin", True)
    LOG.debug("Admin blueprint registered")


__all__ = ["register_admin", "reset_schema_limiter", "bp"]
