"""File download endpoint."""
from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify, request, send_file

from bookclub.services import download_service
from bookclub.utils.identity import login_required
from bookclub.utils.logging import get_logger

LOG = get_logger("downloads_routes")

bp = Blueprint("downloads", __name__)


@bp.route("/api/download", methods=["GET"])
@login_required
def download():
    try:
        target = download_service.prepare_download(request.args.get("id"))
    except download_service.DownloadError as exc:
        return jsonify({"error": str(exc)}), exc.status
    except Exception:
        LOG.exception("Download failed id=%s", request.args.get("id"))
        return jsonify({"error": "internal_error"}), 500
    return send_file(
        target.path,
        mimetype=target.content_type,
        as_attachment=True,
        download_name=target.filename,
    )


def register_downloads(app: Any) -> None:
    if getattr(app, "_bookclub_downloads", False):
        return
    app.register_blueprint(bp)
    setattr(app, "_bookclub_downloads", True)
    LOG.debug("Downloads blueprint registered")


__all__ = ["register_downloads", "bp"]
