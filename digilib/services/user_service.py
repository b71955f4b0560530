"""Admin user management (create, list, lookup)."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from digilib.db.repositories import book_access_repo, user_profiles_repo
from digilib.services import auth_service
from digilib.services.session_service import SessionUser
from digilib.utils.identity import ensure_admin
from digilib.utils.logging import get_logger

LOG = get_logger("user_service")


def _profile_payload(profile, email: Optional[str]) -> Dict[str, Any]:
    payload = profile.as_dict()
    payload["email"] = email
    return payload


def create_user(actor: Optional[SessionUser], email: str, name: str, password: str) -> Dict[str, Any]:
    """Register a new reader account on behalf of an admin.

    The admin's own session is left untouched.
    """
    ensure_admin(actor)
    user = auth_service.register_identity(email, password, name)
    LOG.info("Admin created user admin_id=%s user_id=%s", actor.id, user.id)  # type: ignore[union-attr]
    row = user_profiles_repo.get_profile_with_email(user.id)
    if row is None:  # pragma: no cover - created just above
        return user.to_payload()
    return _profile_payload(*row)


def list_users(actor: Optional[SessionUser]) -> List[Dict[str, Any]]:
    ensure_admin(actor)
    return [_profile_payload(profile, email) for profile, email in user_profiles_repo.list_profiles_with_email()]


def list_users_with_access_counts(actor: Optional[SessionUser]) -> List[Dict[str, Any]]:
    users = list_users(actor)
    counts = book_access_repo.count_by_user()
    for entry in users:
        entry["access_count"] = counts.get(entry["id"], 0)
    return users


def get_user(actor: Optional[SessionUser], user_id: str) -> Optional[Dict[str, Any]]:
    ensure_admin(actor)
    row = user_profiles_repo.get_profile_with_email(user_id)
    if row is None:
        return None
    return _profile_payload(*row)


__all__ = [
    "create_user",
    "list_users",
    "list_users_with_access_counts",
    "get_user",
]
