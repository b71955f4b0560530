"""Tests for the service logger namespace."""
from __future__ import annotations

import logging

from digilib.utils.logging import ROOT_NAME, get_logger


def test_module_loggers_live_under_the_service_namespace():
    log = get_logger("routes.auth")

    assert log.name == "digilib.routes.auth"
    assert get_logger("digilib.startup").name == "digilib.startup"
    assert log.propagate is True


def test_only_the_root_logger_owns_a_handler():
    root = get_logger()
    get_logger("book_service")
    get_logger("book_service")

    assert root.name == ROOT_NAME
    assert root.propagate is False
    assert sum(isinstance(h, logging.StreamHandler) for h in root.handlers) == 1
    assert logging.getLogger("digilib.book_service").handlers == []
