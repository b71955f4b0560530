#!/usr/bin/env python3
"""Seed / verify the library reference data.

Behavior
--------
Idempotent. The script will:
  * Create the backend tables when missing (via the engine init)
  * Insert the default categories that do not exist yet (never edits rows)
  * When DIGILIB_ADMIN_EMAIL and DIGILIB_ADMIN_PASSWORD are set, make sure
    that account exists and carries the ``admin`` role

Environment Variables
---------------------
DIGILIB_BACKEND_URL / DIGILIB_BACKEND_KEY  -> backend endpoint and key (required)
DIGILIB_ADMIN_EMAIL / DIGILIB_ADMIN_PASSWORD / DIGILIB_ADMIN_NAME -> optional admin
"""
from __future__ import annotations

from typing import Any, Dict, List, Tuple

from digilib import config as app_config
from digilib.db import init_engine_once
from digilib.db.repositories import auth_users_repo, categories_repo, user_profiles_repo
from digilib.services import auth_service
from digilib.utils import constants
from digilib.utils.identity import normalize_email
from digilib.utils.logging import get_logger

LOG = get_logger("seed_library")

# (id, name, color, icon)
DEFAULT_CATEGORIES: List[Tuple[str, str, str, str]] = [
    ("fiction", "Fiction", "#8b5cf6", "\U0001F4D6"),
    ("science", "Science", "#0ea5e9", "\U0001F52C"),
    ("history", "History", "#f59e0b", "\U0001F3DB"),
    ("business", "Business", "#10b981", "\U0001F4BC"),
    ("education", "Education", "#ef4444", "\U0001F393"),
    (
        constants.DEFAULT_CATEGORY_ID,
        constants.DEFAULT_CATEGORY_NAME,
        constants.DEFAULT_CATEGORY_COLOR,
        constants.DEFAULT_CATEGORY_ICON,
    ),
]


def ensure_default_categories() -> Dict[str, Any]:
    init_engine_once()
    created = []
    for category_id, name, color, icon in DEFAULT_CATEGORIES:
        if categories_repo.ensure_category(category_id, name, color=color, icon=icon):
            created.append(category_id)
    return {"total": len(DEFAULT_CATEGORIES), "created": created}


def ensure_admin_account() -> Dict[str, Any]:
    """Create or promote the bootstrap admin; skipped without credentials."""
    email = normalize_email(app_config.admin_bootstrap_email())
    password = app_config.admin_bootstrap_password()
    if not email or not password:
        return {"skipped": True}
    init_engine_once()
    created = False
    identity = auth_users_repo.get_by_email(email)
    if identity is None:
        user = auth_service.register_identity(email, password, app_config.admin_bootstrap_name())
        user_id = user.id
        created = True
    else:
        user_id = identity.id
    profile = user_profiles_repo.get_profile(user_id)
    promoted = False
    if profile is not None and profile.role != constants.ROLE_ADMIN:
        user_profiles_repo.set_role(user_id, constants.ROLE_ADMIN)
        promoted = True
    LOG.info("Admin account ensured email=%s created=%s promoted=%s", email, created, promoted)
    return {"skipped": False, "email": email, "created": created, "promoted": promoted}


__all__ = ["DEFAULT_CATEGORIES", "ensure_default_categories", "ensure_admin_account"]
