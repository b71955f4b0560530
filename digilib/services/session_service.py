"""Session layer: explicit session users and a single change coordinator.

Services never look up "the current user" themselves; routes resolve a
`SessionUser` from the Flask session and pass it along. Sign-in/out and
profile updates are published once through the process-wide
`SessionCoordinator`, which fans them out to subscribed listeners.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional

from digilib.db.repositories import user_profiles_repo
from digilib.utils import constants
from digilib.utils.dates import utcnow
from digilib.utils.identity import (
    clear_identity_session,
    get_current_user_id,
    store_identity_session,
)
from digilib.utils.logging import get_logger

LOG = get_logger("session_service")


@dataclass(frozen=True)
class SessionUser:
    id: str
    email: str
    name: Optional[str]
    role: str = constants.ROLE_USER

    @property
    def is_admin(self) -> bool:
        return self.role == constants.ROLE_ADMIN

    def to_payload(self) -> Dict[str, Optional[str]]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "is_admin": self.is_admin,
        }


class SessionEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    USER_UPDATED = "USER_UPDATED"


@dataclass(frozen=True)
class SessionChange:
    event: SessionEvent
    user: Optional[SessionUser]
    at: datetime = field(default_factory=utcnow)


Listener = Callable[[SessionChange], None]


class SessionCoordinator:
    """Single subscription point for session-change events."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def has_listener(self, listener: Listener) -> bool:
        with self._lock:
            return listener in self._listeners

    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def publish(self, change: SessionChange) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(change)
            except Exception:
                LOG.exception("Session listener failed event=%s", change.event.value)

    def clear(self) -> None:
        with self._lock:
            self._listeners.clear()


coordinator = SessionCoordinator()


def load_session_user(user_id: Optional[str]) -> Optional[SessionUser]:
    if not user_id:
        return None
    row = user_profiles_repo.get_profile_with_email(user_id)
    if row is None:
        return None
    profile, email = row
    return SessionUser(id=profile.id, email=email, name=profile.name, role=profile.role)


def current_session_user() -> Optional[SessionUser]:
    """Resolve the signed-in user from the Flask session (request scope)."""
    user_id = get_current_user_id()
    user = load_session_user(user_id)
    if user_id and user is None:
        LOG.info("Dropping stale session user_id=%s", user_id)
        clear_identity_session()
    return user


def establish(user: SessionUser) -> None:
    store_identity_session(user.id, user.email)
    coordinator.publish(SessionChange(SessionEvent.SIGNED_IN, user))


def terminate(user: Optional[SessionUser]) -> None:
    clear_identity_session()
    coordinator.publish(SessionChange(SessionEvent.SIGNED_OUT, user))


def announce_update(user: SessionUser) -> None:
    coordinator.publish(SessionChange(SessionEvent.USER_UPDATED, user))


__all__ = [
    "SessionUser",
    "SessionEvent",
    "SessionChange",
    "SessionCoordinator",
    "coordinator",
    "load_session_user",
    "current_session_user",
    "establish",
    "terminate",
    "announce_update",
]
