"""Tests for backend configuration handling."""
from __future__ import annotations

import pytest

from digilib import config as app_config
from digilib.config import ConfigurationError
from digilib.db.engine import init_engine_once, reset_for_tests
from digilib.startup.wiring import create_app


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.delenv("DIGILIB_BACKEND_URL", raising=False)
    monkeypatch.delenv("DIGILIB_BACKEND_KEY", raising=False)
    yield
    reset_for_tests(drop=True)


def test_missing_backend_values_are_named():
    with pytest.raises(ConfigurationError) as excinfo:
        app_config.require_backend_config()

    message = str(excinfo.value)
    assert "DIGILIB_BACKEND_URL" in message
    assert "DIGILIB_BACKEND_KEY" in message


def test_blank_values_count_as_missing(monkeypatch):
    monkeypatch.setenv("DIGILIB_BACKEND_URL", "sqlite://")
    monkeypatch.setenv("DIGILIB_BACKEND_KEY", "   ")

    with pytest.raises(ConfigurationError) as excinfo:
        app_config.require_backend_config()
    assert "DIGILIB_BACKEND_KEY" in str(excinfo.value)
    assert "DIGILIB_BACKEND_URL" not in str(excinfo.value)


def test_create_app_is_fatal_without_backend():
    with pytest.raises(ConfigurationError):
        create_app()


def test_engine_requires_backend_url():
    with pytest.raises(ConfigurationError):
        init_engine_once()


def test_runtime_summary_hides_key(monkeypatch):
    monkeypatch.setenv("DIGILIB_BACKEND_URL", "sqlite://")
    monkeypatch.setenv("DIGILIB_BACKEND_KEY", "super-secret")

    summary = app_config.summarize_runtime_config()

    assert summary["backend_key_set"] is True
    assert "super-secret" not in str(summary)
