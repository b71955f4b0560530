"""Loggers for the library service.

Every logger lives under the ``digilib`` namespace: ``get_logger("routes.auth")``
returns ``digilib.routes.auth``. Only the namespace root owns a stream
handler; module loggers propagate to it, so a level change via
``DIGILIB_LOG_LEVEL`` applies to the whole service at once.
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

from digilib import config as app_config

ROOT_NAME = "digilib"
LOG_FORMAT = "[digilib] %(asctime)s %(levelname)s %(name)s %(message)s"

_LOCK = threading.Lock()
_ROOT: Optional[logging.Logger] = None


def _qualified(name: str) -> str:
    if name == ROOT_NAME or name.startswith(ROOT_NAME + "."):
        return name
    return f"{ROOT_NAME}.{name}"


def _root_logger() -> logging.Logger:
    global _ROOT
    if _ROOT is not None:
        return _ROOT
    with _LOCK:
        if _ROOT is None:
            root = logging.getLogger(ROOT_NAME)
            root.setLevel(getattr(logging, app_config.log_level_name(), logging.INFO))
            if not any(isinstance(h, logging.StreamHandler) for h in root.handlers):
                handler = logging.StreamHandler()
                handler.setFormatter(logging.Formatter(LOG_FORMAT))
                root.addHandler(handler)
            root.propagate = False
            _ROOT = root
    return _ROOT


def get_logger(name: str = ROOT_NAME) -> logging.Logger:
    root = _root_logger()
    qualified = _qualified(name)
    if qualified == ROOT_NAME:
        return root
    return logging.getLogger(qualified)


__all__ = ["get_logger", "ROOT_NAME"]
