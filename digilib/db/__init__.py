"""Database layer root.

Engine/session management lives in `engine`; repositories build on
`app_session`.
"""

from .engine import (
    init_engine_once,
    get_scoped_session,
    app_session,
)

__all__ = [
    "init_engine_once",
    "get_scoped_session",
    "app_session",
]
