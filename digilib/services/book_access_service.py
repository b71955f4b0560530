"""Per-user/per-book access grants and the read-time access check.

Expiry is evaluated whenever access is checked; expired grants are kept as
rows (nothing sweeps them) so the admin pages can still show them.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from digilib.db.repositories import book_access_repo, books_repo, user_profiles_repo
from digilib.services.session_service import SessionUser
from digilib.utils.dates import isoformat, parse_timestamp, to_naive_utc, utcnow
from digilib.utils.identity import ensure_admin
from digilib.utils.logging import get_logger

LOG = get_logger("book_access_service")


class AccessGrantError(RuntimeError):
    """Raised when a grant cannot be created or removed."""


class AccessStatus(str, Enum):
    GRANTED = "granted"
    EXPIRED = "expired"
    NONE = "none"


@dataclass(frozen=True)
class AccessCheck:
    has_access: bool
    expired: bool

    @property
    def status(self) -> AccessStatus:
        if self.has_access:
            return AccessStatus.GRANTED
        if self.expired:
            return AccessStatus.EXPIRED
        return AccessStatus.NONE

    def to_payload(self) -> Dict[str, Any]:
        return {"has_access": self.has_access, "expired": self.expired, "status": self.status.value}


GRANTED = AccessCheck(has_access=True, expired=False)
EXPIRED = AccessCheck(has_access=False, expired=True)
NO_ACCESS = AccessCheck(has_access=False, expired=False)


def grant_access(
    actor: Optional[SessionUser],
    user_id: str,
    book_id: str,
    expires_at: Any = None,
) -> Dict[str, Any]:
    """Create or overwrite the grant; a null expiry means unlimited."""
    ensure_admin(actor)
    try:
        expiry = parse_timestamp(expires_at)
    except ValueError as exc:
        raise AccessGrantError("expires_at_invalid") from exc
    if user_profiles_repo.get_profile(user_id) is None:
        raise AccessGrantError("user_missing")
    if books_repo.get_book(book_id) is None:
        raise AccessGrantError("book_missing")
    grant = book_access_repo.upsert_grant(
        user_id=user_id,
        book_id=book_id,
        granted_by=actor.id,  # type: ignore[union-attr]
        granted_at=utcnow(),
        expires_at=expiry,
    )
    LOG.info(
        "Granted access user_id=%s book_id=%s expires_at=%s admin_id=%s",
        user_id,
        book_id,
        isoformat(expiry) or "never",
        actor.id,  # type: ignore[union-attr]
    )
    return grant.as_dict()


def revoke_access(actor: Optional[SessionUser], user_id: str, book_id: str) -> bool:
    ensure_admin(actor)
    removed = book_access_repo.delete_grant(user_id, book_id)
    LOG.info("Revoked access user_id=%s book_id=%s removed=%s", user_id, book_id, removed)
    return removed


def get_user_access(user_id: str, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """All grants of a user (expired included), each with its nested book."""
    moment = to_naive_utc(now or utcnow())
    rows = []
    for grant, book in book_access_repo.list_for_user_with_books(user_id):
        payload = grant.as_dict()
        payload["expired"] = grant.is_expired(moment)
        payload["books"] = book.as_dict()
        rows.append(payload)
    return rows


def get_book_access_list(book_id: str, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    moment = to_naive_utc(now or utcnow())
    rows = []
    for grant, profile in book_access_repo.list_for_book_with_profiles(book_id):
        payload = grant.as_dict()
        payload["expired"] = grant.is_expired(moment)
        payload["user_profiles"] = profile.as_dict() if profile else None
        rows.append(payload)
    return rows


def check_access(user_id: Optional[str], book_id: str, now: Optional[datetime] = None) -> AccessCheck:
    if not user_id:
        return NO_ACCESS
    try:
        grant = book_access_repo.get_grant(user_id, book_id)
    except SQLAlchemyError:
        LOG.exception("Access lookup failed user_id=%s book_id=%s", user_id, book_id)
        return NO_ACCESS
    if grant is None:
        return NO_ACCESS
    if grant.is_expired(to_naive_utc(now) if now else None):
        return EXPIRED
    return GRANTED


def resolve_access(user: Optional[SessionUser], book_id: str, now: Optional[datetime] = None) -> AccessCheck:
    """Access for a session user; administrators can read every book."""
    if user is None:
        return NO_ACCESS
    if user.is_admin:
        return GRANTED
    return check_access(user.id, book_id, now)


def get_user_accessible_books(user_id: str, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    moment = to_naive_utc(now or utcnow())
    books = []
    for grant, book in book_access_repo.list_for_user_with_books(user_id):
        if grant.is_expired(moment):
            continue
        payload = book.as_dict()
        payload["access"] = {
            "granted_at": isoformat(grant.granted_at),
            "expires_at": isoformat(grant.expires_at),
        }
        books.append(payload)
    return books


__all__ = [
    "AccessGrantError",
    "AccessStatus",
    "AccessCheck",
    "grant_access",
    "revoke_access",
    "get_user_access",
    "get_book_access_list",
    "check_access",
    "resolve_access",
    "get_user_accessible_books",
]
