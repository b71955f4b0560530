"""Route registration.

Called from startup to register every blueprint on the Flask app.
"""
from __future__ import annotations
from typing import Any

from .admin import register_admin
from .auth import register_auth
from .catalog import register_catalog
from .health import register_health
from .reader import register_reader
from .storage import register_storage


def register_all(app: Any) -> None:
    register_health(app)
    register_auth(app)
    register_catalog(app)
    register_reader(app)
    register_admin(app)
    register_storage(app)


__all__ = ["register_all"]
