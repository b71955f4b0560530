"""Repository helpers for backend auth identities."""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError

from digilib.db import app_session
from digilib.db.models import AuthUser


class AuthUserExistsError(Exception):
    """Raised when an email is already registered."""


def create_auth_user(
    email: str,
    password_hash: str,
    user_metadata: Optional[Dict[str, Any]] = None,
) -> AuthUser:
    """Insert the identity; the profile row is created by the insert trigger."""
    user = AuthUser(
        email=email,
        password_hash=password_hash,
        raw_user_meta_data=json.dumps(user_metadata or {}, sort_keys=True),
    )
    try:
        with app_session() as session:
            session.add(user)
    except IntegrityError as exc:
        raise AuthUserExistsError("email_already_registered") from exc
    return user


def get_by_email(email: str) -> Optional[AuthUser]:
    with app_session() as session:
        return session.query(AuthUser).filter(AuthUser.email == email).one_or_none()


def get_by_id(user_id: str) -> Optional[AuthUser]:
    with app_session() as session:
        return session.get(AuthUser, user_id)


def touch_last_sign_in(user_id: str, signed_in_at: datetime) -> None:
    with app_session() as session:
        user = session.get(AuthUser, user_id)
        if user is not None:
            user.last_sign_in_at = signed_in_at


def update_password_hash(user_id: str, password_hash: str) -> bool:
    with app_session() as session:
        user = session.get(AuthUser, user_id)
        if user is None:
            return False
        user.password_hash = password_hash
        return True


__all__ = [
    "AuthUserExistsError",
    "create_auth_user",
    "get_by_email",
    "get_by_id",
    "touch_last_sign_in",
    "update_password_hash",
]
