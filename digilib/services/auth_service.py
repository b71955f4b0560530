"""Sign-up / sign-in / sign-out against the backend auth identities."""
from __future__ import annotations

import re
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from digilib.db.repositories import auth_users_repo, user_profiles_repo
from digilib.services import session_service
from digilib.services.session_service import SessionUser
from digilib.utils import constants
from digilib.utils.dates import utcnow
from digilib.utils.identity import ensure_authenticated, normalize_email
from digilib.utils.logging import get_logger

LOG = get_logger("auth_service")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AuthError(RuntimeError):
    """Base error for authentication workflows."""


class InvalidCredentialsError(AuthError):
    """Raised when email/password do not match a known identity."""


class EmailAlreadyRegisteredError(AuthError):
    """Raised on signup with an email that already has an identity."""


class AuthValidationError(AuthError, ValueError):
    """Raised when signup/profile input is malformed."""


def _require_email(email: str) -> str:
    normalized = normalize_email(email)
    if not normalized or not _EMAIL_RE.match(normalized):
        raise AuthValidationError("email_invalid")
    return normalized


def _require_name(name: Optional[str]) -> str:
    cleaned = name.strip() if isinstance(name, str) else ""
    if not cleaned:
        raise AuthValidationError("name_required")
    return cleaned


def _require_password(password: Optional[str]) -> str:
    if not isinstance(password, str) or len(password) < constants.MIN_PASSWORD_LENGTH:
        raise AuthValidationError("password_too_short")
    return password


def register_identity(email: str, password: str, name: str) -> SessionUser:
    """Create the auth identity and backfill the profile name.

    The profile row itself comes from the backend signup trigger; only the
    name is written here afterwards. Does not touch the caller's session.
    """
    normalized = _require_email(email)
    cleaned_name = _require_name(name)
    _require_password(password)
    try:
        identity = auth_users_repo.create_auth_user(
            normalized,
            generate_password_hash(password),
            {"name": cleaned_name},
        )
    except auth_users_repo.AuthUserExistsError as exc:
        raise EmailAlreadyRegisteredError("email_already_registered") from exc
    user_profiles_repo.update_profile_name(identity.id, cleaned_name)
    user = session_service.load_session_user(identity.id)
    if user is None:  # pragma: no cover - trigger guarantees the profile
        raise AuthError("profile_missing")
    LOG.info("Registered identity user_id=%s email=%s", user.id, normalized)
    return user


def sign_up(email: str, password: str, name: str) -> SessionUser:
    user = register_identity(email, password, name)
    session_service.establish(user)
    return user


def authenticate(email: str, password: str) -> SessionUser:
    """Verify credentials without establishing a session."""
    normalized = normalize_email(email)
    identity = auth_users_repo.get_by_email(normalized) if normalized else None
    valid = isinstance(password, str) and bool(password)
    if identity is None or not valid or not check_password_hash(identity.password_hash, password):
        LOG.info("Rejected sign-in email=%s", normalized)
        raise InvalidCredentialsError("invalid_credentials")
    user = session_service.load_session_user(identity.id)
    if user is None:
        raise InvalidCredentialsError("invalid_credentials")
    return user


def sign_in(email: str, password: str) -> SessionUser:
    user = authenticate(email, password)
    auth_users_repo.touch_last_sign_in(user.id, utcnow())
    session_service.establish(user)
    LOG.info("Signed in user_id=%s", user.id)
    return user


def sign_out(user: Optional[SessionUser]) -> None:
    session_service.terminate(user)
    if user is not None:
        LOG.info("Signed out user_id=%s", user.id)


def update_profile(actor: Optional[SessionUser], name: str) -> SessionUser:
    """Rename the signed-in user; id and role are never changed here."""
    ensure_authenticated(actor)
    cleaned = _require_name(name)
    user_profiles_repo.update_profile_name(actor.id, cleaned)  # type: ignore[union-attr]
    updated = session_service.load_session_user(actor.id)  # type: ignore[union-attr]
    if updated is None:
        raise AuthError("profile_missing")
    session_service.announce_update(updated)
    return updated


def change_password(actor: Optional[SessionUser], current_password: str, new_password: str) -> None:
    """Replace the signed-in user's password after re-checking the current one."""
    ensure_authenticated(actor)
    if not isinstance(current_password, str) or not current_password:
        raise AuthValidationError("password_required")
    _require_password(new_password)
    identity = auth_users_repo.get_by_id(actor.id)  # type: ignore[union-attr]
    if identity is None or not check_password_hash(identity.password_hash, current_password):
        LOG.info("Rejected password change user_id=%s", actor.id)  # type: ignore[union-attr]
        raise InvalidCredentialsError("invalid_credentials")
    auth_users_repo.update_password_hash(identity.id, generate_password_hash(new_password))
    LOG.info("Password changed user_id=%s", identity.id)


__all__ = [
    "AuthError",
    "InvalidCredentialsError",
    "EmailAlreadyRegisteredError",
    "AuthValidationError",
    "register_identity",
    "sign_up",
    "authenticate",
    "sign_in",
    "sign_out",
    "update_profile",
    "change_password",
]
