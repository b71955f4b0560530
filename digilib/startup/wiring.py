"""Application initialization / wiring.

Orchestrates: backend config check, DB init, route registration and the
session-event log listener.
"""
from __future__ import annotations
from typing import Any, Optional

from flask import Flask

from digilib import config as app_config
from digilib.db import init_engine_once
from digilib.routes.inject import register_all as register_routes
from digilib.services import session_service
from digilib.services.session_service import SessionChange
from digilib.utils.logging import get_logger

LOG = get_logger("digilib.startup")


def _log_session_change(change: SessionChange) -> None:
    user_id = change.user.id if change.user else None
    LOG.info("Session event=%s user_id=%s", change.event.value, user_id)


def init_app(app: Any) -> None:
    LOG.debug("init_app starting")
    init_engine_once()
    LOG.debug("DB engine initialized")
    register_routes(app)
    LOG.debug("Routes registered")
    # coordinator is process-wide; one log listener serves every app
    if not session_service.coordinator.has_listener(_log_session_change):
        session_service.coordinator.subscribe(_log_session_change)
    LOG.info("App startup wiring complete config=%s", app_config.summarize_runtime_config())


def create_app(overrides: Optional[dict] = None) -> Flask:
    """Build the Flask app; missing backend config is fatal here."""
    _url, key = app_config.require_backend_config()
    app = Flask(app_config.APP_NAME)
    app.config.update(
        SECRET_KEY=key,
        APP_TITLE=app_config.app_title() or "Digital Library",
    )
    if overrides:
        app.config.update(overrides)
    init_app(app)
    return app


__all__ = ["init_app", "create_app"]
