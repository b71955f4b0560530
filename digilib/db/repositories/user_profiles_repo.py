"""Repository helpers for user profiles (one-to-one with auth identities)."""
from __future__ import annotations

from typing import List, Optional, Tuple

from digilib.db import app_session
from digilib.db.models import AuthUser, UserProfile


def list_profiles_with_email() -> List[Tuple[UserProfile, str]]:
    with app_session() as session:
        rows = (
            session.query(UserProfile, AuthUser.email)
            .join(AuthUser, AuthUser.id == UserProfile.id)
            .order_by(UserProfile.created_at.desc(), UserProfile.id.asc())
            .all()
        )
        return [(profile, email) for profile, email in rows]


def get_profile(user_id: str) -> Optional[UserProfile]:
    with app_session() as session:
        return session.get(UserProfile, user_id)


def get_profile_with_email(user_id: str) -> Optional[Tuple[UserProfile, str]]:
    with app_session() as session:
        row = (
            session.query(UserProfile, AuthUser.email)
            .join(AuthUser, AuthUser.id == UserProfile.id)
            .filter(UserProfile.id == user_id)
            .one_or_none()
        )
        if row is None:
            return None
        return row[0], row[1]


def update_profile_name(user_id: str, name: str) -> Optional[UserProfile]:
    with app_session() as session:
        profile = session.get(UserProfile, user_id)
        if not profile:
            return None
        profile.name = name
        return profile


def set_role(user_id: str, role: str) -> Optional[UserProfile]:
    with app_session() as session:
        profile = session.get(UserProfile, user_id)
        if not profile:
            return None
        profile.role = role
        return profile


__all__ = [
    "list_profiles_with_email",
    "get_profile",
    "get_profile_with_email",
    "update_profile_name",
    "set_role",
]
