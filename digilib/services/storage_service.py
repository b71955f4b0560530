"""Bucketed object storage with time-limited signed read URLs.

Objects live under ``<DIGILIB_STORAGE_ROOT>/<bucket>/<path>``. Private files
are never served by path: a reader asks for a signed URL (Fernet token keyed
from the backend key, carrying bucket, path and expiry) and the storage route
streams the object only while that token is valid.
"""
from __future__ import annotations

import base64
import hashlib
import json
import os
import tempfile
import time
from pathlib import Path
from typing import IO, Iterable, List, Optional, Union
from urllib.parse import quote, urlencode

from cryptography.fernet import Fernet, InvalidToken

from digilib import config as app_config
from digilib.utils import constants
from digilib.utils.logging import get_logger

LOG = get_logger("storage_service")

SIGNED_URL_PREFIX = "/storage/sign"


class StorageError(RuntimeError):
    """Base error for storage operations."""


class InvalidObjectPathError(StorageError):
    """Raised for unknown buckets or paths escaping their bucket."""


class ObjectExistsError(StorageError):
    """Raised when uploading over an existing object without ``upsert``."""


class ObjectNotFoundError(StorageError):
    """Raised when the requested object does not exist."""


class SignedUrlError(StorageError):
    """Raised when a signed URL token is invalid or does not match."""


class SignedUrlExpiredError(SignedUrlError):
    """Raised when a signed URL token is past its expiry."""


def _storage_root() -> Path:
    return Path(app_config.storage_root())


def _bucket_dir(bucket: str) -> Path:
    if bucket not in constants.BUCKETS:
        raise InvalidObjectPathError("unknown_bucket")
    return (_storage_root() / bucket).resolve()


def _object_path(bucket: str, path: str) -> Path:
    if not isinstance(path, str) or not path.strip():
        raise InvalidObjectPathError("path_required")
    cleaned = path.strip()
    if cleaned.startswith("/") or "\\" in cleaned or ".." in cleaned.split("/"):
        raise InvalidObjectPathError("invalid_path")
    bucket_dir = _bucket_dir(bucket)
    target = (bucket_dir / cleaned).resolve()
    if bucket_dir not in target.parents:
        LOG.warning("storage path traversal guard triggered bucket=%s path=%s", bucket, path)
        raise InvalidObjectPathError("invalid_path")
    return target


def exists(bucket: str, path: str) -> bool:
    return _object_path(bucket, path).is_file()


def upload(
    bucket: str,
    path: str,
    data: Union[bytes, IO[bytes]],
    *,
    upsert: bool = False,
) -> str:
    """Write the object atomically and return its path."""
    target = _object_path(bucket, path)
    if target.exists() and not upsert:
        raise ObjectExistsError("object_exists")
    payload = data if isinstance(data, (bytes, bytearray)) else data.read()
    target.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
    tmp_fd, tmp_path = tempfile.mkstemp(dir=str(target.parent), prefix=".upload-", suffix=".tmp")
    try:
        with os.fdopen(tmp_fd, "wb") as fh:
            fh.write(payload)
        os.replace(tmp_path, target)
    except OSError as exc:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise StorageError("upload_failed") from exc
    LOG.info("Stored object bucket=%s path=%s bytes=%s", bucket, path, len(payload))
    return path


def download(bucket: str, path: str) -> bytes:
    target = _object_path(bucket, path)
    if not target.is_file():
        raise ObjectNotFoundError("object_missing")
    return target.read_bytes()


def remove(bucket: str, paths: Iterable[str]) -> List[str]:
    """Delete objects, returning the paths that existed and were removed."""
    removed: List[str] = []
    for path in paths:
        target = _object_path(bucket, path)
        if not target.is_file():
            LOG.debug("remove skipped missing object bucket=%s path=%s", bucket, path)
            continue
        try:
            target.unlink()
        except OSError as exc:
            raise StorageError("remove_failed") from exc
        removed.append(path)
    if removed:
        LOG.info("Removed objects bucket=%s paths=%s", bucket, removed)
    return removed


def _derive_fernet_key(secret_value: Optional[str]) -> bytes:
    if not secret_value:
        raise app_config.ConfigurationError(
            f"Missing backend config values: {app_config.BACKEND_KEY_ENV}"
        )
    digest = hashlib.sha256(secret_value.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


def _fernet() -> Fernet:
    return Fernet(_derive_fernet_key(app_config.backend_key()))


def create_signed_token(
    bucket: str,
    path: str,
    expires_in: int = constants.SIGNED_URL_TTL_SECONDS,
    *,
    now: Optional[float] = None,
) -> str:
    _object_path(bucket, path)  # validate before signing
    issued = int(now if now is not None else time.time())
    document = {"bucket": bucket, "path": path, "exp": issued + int(expires_in)}
    token = _fernet().encrypt(json.dumps(document, sort_keys=True, separators=(",", ":")).encode("utf-8"))
    return token.decode("utf-8")


def create_signed_url(
    bucket: str,
    path: str,
    expires_in: int = constants.SIGNED_URL_TTL_SECONDS,
    *,
    now: Optional[float] = None,
) -> str:
    """Return a relative URL granting read access until the expiry."""
    token = create_signed_token(bucket, path, expires_in, now=now)
    return f"{SIGNED_URL_PREFIX}/{bucket}/{quote(path)}?{urlencode({'token': token})}"


def verify_signed_token(bucket: str, path: str, token: str, *, now: Optional[float] = None) -> None:
    if not token or not isinstance(token, str):
        raise SignedUrlError("token_required")
    try:
        decrypted = _fernet().decrypt(token.encode("utf-8"))
    except InvalidToken as exc:
        LOG.warning("Rejected invalid signed URL token bucket=%s path=%s", bucket, path)
        raise SignedUrlError("invalid_token") from exc
    try:
        document = json.loads(decrypted.decode("utf-8"))
    except ValueError as exc:  # pragma: no cover - input integrity guard
        raise SignedUrlError("invalid_payload") from exc
    if document.get("bucket") != bucket or document.get("path") != path:
        raise SignedUrlError("token_mismatch")
    current = now if now is not None else time.time()
    if current > int(document.get("exp", 0)):
        raise SignedUrlExpiredError("token_expired")


__all__ = [
    "SIGNED_URL_PREFIX",
    "StorageError",
    "InvalidObjectPathError",
    "ObjectExistsError",
    "ObjectNotFoundError",
    "SignedUrlError",
    "SignedUrlExpiredError",
    "exists",
    "upload",
    "download",
    "remove",
    "create_signed_token",
    "create_signed_url",
    "verify_signed_token",
]
