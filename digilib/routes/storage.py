"""Serves stored objects behind signed, time-limited URLs."""
from __future__ import annotations

import mimetypes
from typing import Any

from flask import Blueprint, Response, request

from digilib.routes.responses import json_error
from digilib.services import storage_service
from digilib.utils.logging import get_logger

LOG = get_logger("routes.storage")
bp = Blueprint("storage", __name__, url_prefix=storage_service.SIGNED_URL_PREFIX)


@bp.route("/<bucket>/<path:object_path>", methods=["GET"])
def signed_object(bucket: str, object_path: str):
    try:
        storage_service.verify_signed_token(bucket, object_path, request.args.get("token", ""))
    except storage_service.SignedUrlError as exc:
        return json_error(str(exc), 403)
    try:
        data = storage_service.download(bucket, object_path)
    except storage_service.ObjectNotFoundError:
        return json_error("object_missing", 404)
    except storage_service.InvalidObjectPathError as exc:
        return json_error(str(exc), 400)
    mimetype = mimetypes.guess_type(object_path)[0] or "application/octet-stream"
    response = Response(data, mimetype=mimetype)
    response.headers["Cache-Control"] = "private, no-store"
    return response


def register_storage(app: Any) -> None:
    if getattr(app, "_storage_bp", None):
        return
    app.register_blueprint(bp)
    setattr(app, "_storage_bp", bp)
    LOG.debug("storage blueprint registered")


__all__ = ["register_storage"]
