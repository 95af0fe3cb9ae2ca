"""Cover endpoints: resolved provider covers and generated SVG placeholders."""
from __future__ import annotations

from typing import Any

from flask import Blueprint, Response, jsonify, request

from bookclub.services import placeholder_service
from bookclub.services.cover_resolver import get_resolver
from bookclub.utils.identity import login_required
from bookclub.utils.logging import get_logger

LOG = get_logger("covers_routes")

bp = Blueprint("covers", __name__)


@bp.route("/api/book-cover", methods=["GET"])
@login_required
def book_cover():
    title = (request.args.get("title") or "").strip()
    if not title:
        return jsonify({"error": "title_required"}), 400
    author = (request.args.get("author") or "").strip() or None
    resolved = get_resolver().resolve(title, author)
    return jsonify(resolved.as_dict())


@bp.route("/api/placeholder", methods=["GET"])
@login_required
def placeholder():
    svg = placeholder_service.render_placeholder_svg(request.args.get("title"), request.args.get("author"))
    resp = Response(svg, mimetype="image/svg+xml")
    resp.headers["Cache-Control"] = placeholder_service.CACHE_CONTROL
    return resp


def register_covers(app: Any) -> None:
    if getattr(app, "_bookclub_covers", False):
        return
    app.register_blueprint(bp)
    setattr(app, "_bookclub_covers", True)
    LOG.debug("Covers blueprint registered")


__all__ = ["register_covers", "bp"]
