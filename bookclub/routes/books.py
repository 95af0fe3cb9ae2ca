"""Catalog API and the server-rendered dashboard."""
from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify, redirect, render_template, request

from bookclub.services import catalog_service
from bookclub.startup.extensions import csrf
from bookclub.utils.identity import get_current_user_email, is_authenticated, login_required
from bookclub.utils.logging import get_logger

LOG = get_logger("books_routes")

bp = Blueprint("books", __name__)


@bp.route("/", methods=["GET"])
def index():
    if is_authenticated():
        return redirect("/dashboard")
    return render_template("index.html")


@bp.route("/api/books", methods=["GET"])
@login_required
def api_list_books():
    query = catalog_service.parse_query(request.args)
    try:
        payload = catalog_service.list_catalog(query)
    except Exception:
        LOG.exception("Catalog listing failed")
        return jsonify({"error": "internal_error"}), 500
    return jsonify(payload)


@bp.route("/api/books/add", methods=["POST"])
@csrf.exempt
@login_required
def api_add_book():
    payload = request.get_json(silent=True)
    if payload is None:
        return jsonify({"error": "invalid_json"}), 400
    try:
        book = catalog_service.add_book(payload)
    except catalog_service.CatalogError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        LOG.exception("Adding book failed")
        return jsonify({"error": "internal_error"}), 500
    return jsonify({"success": True, "bookId": book.id}), 201


@bp.route("/dashboard", methods=["GET"])
@login_required
def dashboard():
    query = catalog_service.parse_query(request.args)
    catalog = catalog_service.list_catalog(query)
    return render_template(
        "dashboard.html",
        catalog=catalog,
        query=query,
        user_email=get_current_user_email(),
        format_file_size=catalog_service.format_file_size,
    )


def register_books(app: Any) -> None:
    if getattr(app, "_bookclub_books", False):
        return
    app.register_blueprint(bp)
    setattr(app, "_bookclub_books", True)
    LOG.debug("Books blueprint registered")


__all__ = ["register_books", "bp"]
