"""Application configuration accessors.

Centralizes environment variable parsing & defaults. The backend is reached
through two values: an endpoint (SQLAlchemy database URL) and a key (secret
used for signed storage URLs and the session cookie). Both are mandatory;
`require_backend_config` is the single place that enforces it.
"""
from __future__ import annotations

import os
from functools import lru_cache

APP_NAME = "digilib"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = "Digital PDF library: catalog, reader progress and per-book access grants"

BACKEND_URL_ENV = "DIGILIB_BACKEND_URL"
BACKEND_KEY_ENV = "DIGILIB_BACKEND_KEY"

DEFAULT_STORAGE_ROOT = "storage"
DEFAULT_LOG_LEVEL = "INFO"


class ConfigurationError(RuntimeError):
    """Raised when mandatory backend settings are missing."""


def _raw_env(name: str, default: str | None = None) -> str | None:
    val = os.getenv(name)
    return val if val is not None else default


def _stripped_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def backend_url() -> str | None:
    """Backend endpoint (database URL) or None when unset."""
    return _stripped_env(BACKEND_URL_ENV)


def backend_key() -> str | None:
    """Backend key or None when unset."""
    return _stripped_env(BACKEND_KEY_ENV)


def require_backend_config() -> tuple[str, str]:
    """Return ``(url, key)`` or raise naming every missing variable."""
    values = {
        BACKEND_URL_ENV: backend_url(),
        BACKEND_KEY_ENV: backend_key(),
    }
    missing = [name for name, val in values.items() if not val]
    if missing:
        raise ConfigurationError(f"Missing backend config values: {', '.join(missing)}")
    return values[BACKEND_URL_ENV], values[BACKEND_KEY_ENV]  # type: ignore[return-value]


def storage_root() -> str:
    return _raw_env("DIGILIB_STORAGE_ROOT", DEFAULT_STORAGE_ROOT)  # type: ignore[return-value]


def log_level_name() -> str:
    return _raw_env("DIGILIB_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()  # type: ignore[union-attr]


@lru_cache(maxsize=1)
def metadata() -> dict:
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "description": APP_DESCRIPTION,
    }


def summarize_runtime_config() -> dict:
    # never expose the key itself
    return {
        "backend_url_set": backend_url() is not None,
        "backend_key_set": backend_key() is not None,
        "storage_root": storage_root(),
        "log_level": log_level_name(),
    }


def app_title() -> str | None:
    """Optional override for the UI title."""
    return _stripped_env("APP_TITLE")


def admin_bootstrap_email() -> str | None:
    """Bootstrap administrator email (DIGILIB_ADMIN_EMAIL), no default."""
    return _stripped_env("DIGILIB_ADMIN_EMAIL")


def admin_bootstrap_password() -> str | None:
    """Bootstrap administrator password (DIGILIB_ADMIN_PASSWORD), no default."""
    return _raw_env("DIGILIB_ADMIN_PASSWORD") or None


def admin_bootstrap_name() -> str:
    return _stripped_env("DIGILIB_ADMIN_NAME") or "Administrator"


__all__ = [
    "APP_NAME",
    "APP_VERSION",
    "APP_DESCRIPTION",
    "BACKEND_URL_ENV",
    "BACKEND_KEY_ENV",
    "ConfigurationError",
    "backend_url",
    "backend_key",
    "require_backend_config",
    "storage_root",
    "log_level_name",
    "metadata",
    "summarize_runtime_config",
    "app_title",
    "admin_bootstrap_email",
    "admin_bootstrap_password",
    "admin_bootstrap_name",
]
