"""Sign-up / sign-in / sign-out JSON endpoints under /auth."""
from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify

from digilib.routes.responses import json_error, json_payload, require_user
from digilib.services import auth_service, session_service
from digilib.services.session_service import SessionUser
from digilib.utils.logging import get_logger

LOG = get_logger("routes.auth")
bp = Blueprint("auth", __name__, url_prefix="/auth")


@bp.route("/register", methods=["POST"])
def register():
    payload = json_payload()
    if payload is None:
        return json_error("payload_invalid", 400)
    try:
        user = auth_service.sign_up(payload.get("email"), payload.get("password"), payload.get("name"))
    except auth_service.AuthValidationError as exc:
        return json_error(str(exc), 400)
    except auth_service.EmailAlreadyRegisteredError:
        return json_error("email_already_registered", 409)
    return jsonify({"user": user.to_payload()}), 201


@bp.route("/login", methods=["POST"])
def login():
    payload = json_payload()
    if payload is None:
        return json_error("payload_invalid", 400)
    try:
        user = auth_service.sign_in(payload.get("email"), payload.get("password"))
    except auth_service.InvalidCredentialsError:
        return json_error("invalid_credentials", 401)
    return jsonify({"user": user.to_payload()})


@bp.route("/logout", methods=["POST"])
def logout():
    auth_service.sign_out(session_service.current_session_user())
    return jsonify({"status": "signed_out"})


@bp.route("/session", methods=["GET"])
def current_session():
    user = session_service.current_session_user()
    return jsonify({"user": user.to_payload() if user else None})


@bp.route("/profile", methods=["PATCH"])
def update_profile():
    user = require_user()
    if not isinstance(user, SessionUser):
        return user
    payload = json_payload()
    if payload is None:
        return json_error("payload_invalid", 400)
    try:
        updated = auth_service.update_profile(user, payload.get("name"))
    except auth_service.AuthValidationError as exc:
        return json_error(str(exc), 400)
    except auth_service.AuthError as exc:
        return json_error(str(exc), 404)
    return jsonify({"user": updated.to_payload()})


@bp.route("/password", methods=["PATCH"])
def change_password():
    user = require_user()
    if not isinstance(user, SessionUser):
        return user
    payload = json_payload()
    if payload is None:
        return json_error("payload_invalid", 400)
    confirm = payload.get("confirm_password")
    if confirm is not None and confirm != payload.get("new_password"):
        return json_error("password_mismatch", 400)
    try:
        auth_service.change_password(user, payload.get("current_password"), payload.get("new_password"))
    except auth_service.AuthValidationError as exc:
        return json_error(str(exc), 400)
    except auth_service.InvalidCredentialsError:
        return json_error("invalid_credentials", 403, message="Current password is incorrect.")
    return jsonify({"status": "password_changed"})


def register_auth(app: Any) -> None:
    if getattr(app, "_auth_bp", None):
        return
    app.register_blueprint(bp)
    setattr(app, "_auth_bp", bp)
    LOG.debug("auth blueprint registered")


__all__ = ["register_auth"]
