"""Sign-in, sign-up and sign-out pages backed by local accounts."""
from __future__ import annotations

from typing import Any, Optional

from flask import Blueprint, jsonify, redirect, render_template, request
from flask_babel import lazy_gettext as _l

from bookclub.services import auth_service
from bookclub.utils.identity import clear_identity_session, is_authenticated, login_session
from bookclub.utils.logging import get_logger

LOG = get_logger("auth_routes")

bp = Blueprint("auth", __name__)

DEFAULT_NEXT = "/dashboard"

_ERROR_MESSAGES = {
    "email_required": _l("Email address is required."),
    "email_invalid": _l("Enter a valid email address."),
    "email_taken": _l("An account with this email already exists."),
    "password_too_short": _l("Password must be at least %(count)s characters.", count=auth_service.MIN_PASSWORD_LENGTH),
    "invalid_credentials": _l("Email or password is incorrect."),
}


def _sanitize_next(raw_target: Optional[str]) -> str:
    target = (raw_target or "").strip()
    # browsers treat a backslash as a slash, making "/\host" protocol-relative
    if target.startswith("/") and not target.startswith("//") and "\\" not in target:
        return target
    return DEFAULT_NEXT


def _wants_json() -> bool:
    return request.is_json or request.accept_mimetypes.best == "application/json"


def _form_payload() -> dict:
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def _error_response(code: str, status: int, template: str, **context: Any):
    if _wants_json():
        return jsonify({"error": code}), status
    message = _ERROR_MESSAGES.get(code, code)
    return render_template(template, error=message, **context), status


def _signed_in_response(user, next_url: str):
    login_session(
        user_id=user.id,
        email=user.email,
        is_admin=auth_service.is_admin_account(user),
        remember=bool(_form_payload().get("remember")),
    )
    if _wants_json():
        return jsonify({"status": "ok", "user": user.as_dict(), "redirect": next_url})
    return redirect(next_url)


@bp.route("/sign-in", methods=["GET", "POST"])
def sign_in():
    next_url = _sanitize_next(request.values.get("next"))
    if request.method == "GET":
        if is_authenticated():
            return redirect(next_url)
        return render_template("sign_in.html", next_url=next_url, error=None)
    payload = _form_payload()
    try:
        user = auth_service.authenticate(payload.get("email"), payload.get("password"))
    except auth_service.AuthError as exc:
        return _error_response(str(exc), 401, "sign_in.html", next_url=next_url)
    LOG.info("User signed in id=%s", user.id)
    return _signed_in_response(user, next_url)


@bp.route("/sign-up", methods=["GET", "POST"])
def sign_up():
    next_url = _sanitize_next(request.values.get("next"))
    if request.method == "GET":
        return render_template("sign_up.html", next_url=next_url, error=None)
    payload = _form_payload()
    try:
        user = auth_service.register(payload.get("email"), payload.get("password"), payload.get("name"))
    except auth_service.AuthError as exc:
        status = 409 if str(exc) == "email_taken" else 400
        return _error_response(str(exc), status, "sign_up.html", next_url=next_url)
    if _wants_json():
        login_session(user_id=user.id, email=user.email, is_admin=auth_service.is_admin_account(user))
        return jsonify({"status": "ok", "user": user.as_dict(), "redirect": next_url}), 201
    return _signed_in_response(user, next_url)


@bp.route("/sign-out", methods=["POST"])
def sign_out():
    clear_identity_session()
    if _wants_json():
        return jsonify({"status": "ok"})
    return redirect("/")


def register_auth(app: Any) -> None:
    if getattr(app, "_bookclub_auth", False):
        return
    app.register_blueprint(bp)
    setattr(app, "_bookclub_auth", True)
    LOG.debug("Auth blueprint registered")


__all__ = ["register_auth", "bp"]
