"""Utility helpers.

Single import surface for identity helpers; constants re-exported as a module.
"""
from .identity import (
    normalize_email,
    get_current_user_id,
    ensure_admin,
    ensure_authenticated,
    PermissionError,
    AuthenticationRequiredError,
)
from . import constants  # re-export module for ROLE_ADMIN access

__all__ = [
    "normalize_email",
    "get_current_user_id",
    "ensure_admin",
    "ensure_authenticated",
    "PermissionError",
    "AuthenticationRequiredError",
    "constants",
]
