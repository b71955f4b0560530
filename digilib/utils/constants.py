"""Shared constants (roles, buckets, limits).

Kept in one module so services and routes avoid magic strings and tests can
reference the same values.
"""
from __future__ import annotations

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)

# Storage buckets
PDF_BUCKET = "books"
COVER_BUCKET = "covers"
BUCKETS = (PDF_BUCKET, COVER_BUCKET)
SIGNED_URL_TTL_SECONDS = 60 * 60

PDF_MIME_TYPE = "application/pdf"
MAX_BOOK_SIZE = 100 * 1024 * 1024
WARNING_BOOK_SIZE = 50 * 1024 * 1024

RECENT_BOOKS_COUNT = 5
CATEGORY_FILTER_ALL = "all"
DEFAULT_CATEGORY_ID = "other"
DEFAULT_CATEGORY_NAME = "Other"
DEFAULT_CATEGORY_COLOR = "#64748b"
DEFAULT_CATEGORY_ICON = "\U0001F4D1"

MAX_TITLE_LENGTH = 200
MAX_AUTHOR_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 1000
MIN_PRICE = 0
MIN_PASSWORD_LENGTH = 6

__all__ = [
    "ROLE_USER",
    "ROLE_ADMIN",
    "ROLES",
    "PDF_BUCKET",
    "COVER_BUCKET",
    "BUCKETS",
    "SIGNED_URL_TTL_SECONDS",
    "PDF_MIME_TYPE",
    "MAX_BOOK_SIZE",
    "WARNING_BOOK_SIZE",
    "RECENT_BOOKS_COUNT",
    "CATEGORY_FILTER_ALL",
    "DEFAULT_CATEGORY_ID",
    "DEFAULT_CATEGORY_NAME",
    "DEFAULT_CATEGORY_COLOR",
    "DEFAULT_CATEGORY_ICON",
    "MAX_TITLE_LENGTH",
    "MAX_AUTHOR_LENGTH",
    "MAX_DESCRIPTION_LENGTH",
    "MIN_PRICE",
    "MIN_PASSWORD_LENGTH",
]
