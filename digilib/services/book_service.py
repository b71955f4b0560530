"""Book catalog service: listing/search helpers and admin CRUD.

Create and delete each touch two systems (object storage + the `books`
table) in sequence. They are not transactional, so both paths compensate:
a failed insert removes the file uploaded just before it, and a failed row
delete re-uploads the objects removed just before it. When compensation
itself fails the orphan is logged with its bucket/path.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from digilib.db.repositories import books_repo, categories_repo
from digilib.services import storage_service
from digilib.services.session_service import SessionUser
from digilib.utils import constants
from digilib.utils.identity import ensure_admin
from digilib.utils.logging import get_logger

LOG = get_logger("book_service")


class BookValidationError(ValueError):
    """Raised when book metadata or the uploaded file fails validation."""


class BookNotFoundError(RuntimeError):
    """Raised when a book id cannot be located."""


class BookFileMissingError(RuntimeError):
    """Raised when a book row has no stored PDF to read."""


class BookPersistenceError(RuntimeError):
    """Raised when the metadata row write fails after storage was touched."""


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    data: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_file_storage(cls, storage: FileStorage) -> "UploadedFile":
        return cls(
            filename=storage.filename or "",
            data=storage.read(),
            content_type=storage.mimetype or None,
        )


# ---------------- read side ----------------

def list_books() -> List[Dict[str, Any]]:
    return [b.as_dict() for b in books_repo.list_books()]


def get_book(book_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if not book_id:
        return None
    book = books_repo.get_book(book_id)
    return book.as_dict() if book else None


def filter_by_category(books: List[Dict[str, Any]], category_id: Optional[str]) -> List[Dict[str, Any]]:
    if not category_id or category_id == constants.CATEGORY_FILTER_ALL:
        return list(books)
    return [b for b in books if b.get("category") == category_id]


def search_books(books: List[Dict[str, Any]], query: Optional[str]) -> List[Dict[str, Any]]:
    if not query or not query.strip():
        return list(books)
    needle = query.strip().lower()
    return [
        b
        for b in books
        if needle in (b.get("name") or "").lower()
        or needle in (b.get("author") or "").lower()
        or needle in (b.get("description") or "").lower()
    ]


def recent_books(books: List[Dict[str, Any]], limit: int = constants.RECENT_BOOKS_COUNT) -> List[Dict[str, Any]]:
    ordered = sorted(books, key=lambda b: b.get("created_at") or "", reverse=True)
    return ordered[: max(limit, 0)]


def category_counts(books: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for book in books:
        key = book.get("category") or constants.DEFAULT_CATEGORY_ID
        counts[key] = counts.get(key, 0) + 1
    return counts


def total_size(books: Iterable[Dict[str, Any]]) -> int:
    return sum(int(b.get("size") or 0) for b in books)


def book_stats(books: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    books = list_books() if books is None else books
    count = len(books)
    size = total_size(books)
    return {
        "total_books": count,
        "total_size": size,
        "category_counts": category_counts(books),
        # half-up like the dashboard always showed it
        "average_size": (2 * size + count) // (2 * count) if count else 0,
    }


def get_read_url(book_id: str) -> str:
    """Signed one-hour URL for the book PDF, generated per request."""
    book = books_repo.get_book(book_id)
    if not book:
        raise BookNotFoundError("book_missing")
    if not book.pdf_path:
        raise BookFileMissingError("pdf_missing")
    return storage_service.create_signed_url(
        constants.PDF_BUCKET,
        book.pdf_path,
        constants.SIGNED_URL_TTL_SECONDS,
    )


def get_cover_url(book: Dict[str, Any]) -> Optional[str]:
    path = book.get("cover_path")
    if not path:
        return None
    return storage_service.create_signed_url(constants.COVER_BUCKET, path)


# ---------------- validation ----------------

def _clean_text(data: Dict[str, Any], key: str, max_len: int, *, required: bool) -> Optional[str]:
    raw = data.get(key)
    if raw is None:
        if required:
            raise BookValidationError(f"{key}_required")
        return None
    if not isinstance(raw, str):
        raise BookValidationError(f"{key}_invalid")
    cleaned = raw.strip()
    if required and not cleaned:
        raise BookValidationError(f"{key}_required")
    if len(cleaned) > max_len:
        raise BookValidationError(f"{key}_too_long")
    return cleaned


def _clean_int(data: Dict[str, Any], key: str, minimum: int = 0) -> Optional[int]:
    raw = data.get(key)
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        raise BookValidationError(f"{key}_invalid")
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise BookValidationError(f"{key}_invalid") from exc
    if value < minimum:
        raise BookValidationError(f"{key}_invalid")
    return value


def _validate_fields(data: Dict[str, Any], *, partial: bool) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    checks = (
        ("name", constants.MAX_TITLE_LENGTH, True),
        ("author", constants.MAX_AUTHOR_LENGTH, True),
        ("description", constants.MAX_DESCRIPTION_LENGTH, False),
    )
    for key, max_len, required in checks:
        if partial and key not in data:
            continue
        value = _clean_text(data, key, max_len, required=required)
        if value is not None or not partial:
            fields[key] = value if value is not None else ""
    if not partial or "category" in data:
        category_id = _clean_text(data, "category", 64, required=True)
        if categories_repo.get_category(category_id) is None:  # type: ignore[arg-type]
            raise BookValidationError("category_unknown")
        fields["category"] = category_id
    for key, minimum in (("price", constants.MIN_PRICE), ("total_pages", 0), ("size", 0)):
        if partial and key not in data:
            continue
        value = _clean_int(data, key, minimum)
        if value is not None:
            fields[key] = value
        elif not partial:
            fields[key] = 0
    return fields


def _validate_pdf(pdf: UploadedFile) -> None:
    filename = (pdf.filename or "").lower()
    if pdf.content_type != constants.PDF_MIME_TYPE and not filename.endswith(".pdf"):
        raise BookValidationError("pdf_type_invalid")
    if pdf.size == 0:
        raise BookValidationError("pdf_empty")
    if pdf.size > constants.MAX_BOOK_SIZE:
        raise BookValidationError("pdf_too_large")
    if pdf.size > constants.WARNING_BOOK_SIZE:
        LOG.warning("Large PDF upload filename=%s bytes=%s", pdf.filename, pdf.size)


def _object_name(book_id: str, upload: UploadedFile, fallback: str) -> str:
    return f"{book_id}/{secure_filename(upload.filename) or fallback}"


# ---------------- write side ----------------

def _discard_uploads(uploaded: List[Tuple[str, str]]) -> None:
    for bucket, path in uploaded:
        try:
            storage_service.remove(bucket, [path])
        except storage_service.StorageError:
            LOG.error("Orphaned object left in storage bucket=%s path=%s", bucket, path, exc_info=True)


def create_book(
    actor: Optional[SessionUser],
    data: Dict[str, Any],
    pdf: Optional[UploadedFile] = None,
    cover: Optional[UploadedFile] = None,
) -> Dict[str, Any]:
    """Upload the file(s) first, then insert the metadata row."""
    ensure_admin(actor)
    fields = _validate_fields(data, partial=False)
    if pdf is not None:
        _validate_pdf(pdf)
    book_id = str(uuid.uuid4())

    uploaded: List[Tuple[str, str]] = []
    try:
        if pdf is not None:
            pdf_path = _object_name(book_id, pdf, "book.pdf")
            storage_service.upload(constants.PDF_BUCKET, pdf_path, pdf.data)
            uploaded.append((constants.PDF_BUCKET, pdf_path))
            fields["pdf_path"] = pdf_path
            fields["size"] = fields.get("size") or pdf.size
        if cover is not None:
            cover_path = _object_name(book_id, cover, "cover")
            storage_service.upload(constants.COVER_BUCKET, cover_path, cover.data)
            uploaded.append((constants.COVER_BUCKET, cover_path))
            fields["cover_path"] = cover_path
    except storage_service.StorageError:
        _discard_uploads(uploaded)
        raise

    try:
        book = books_repo.create_book(id=book_id, created_by=actor.id, **fields)  # type: ignore[union-attr]
    except SQLAlchemyError as exc:
        LOG.error("Book insert failed after upload book_id=%s; removing uploaded files", book_id)
        _discard_uploads(uploaded)
        raise BookPersistenceError("book_insert_failed") from exc

    LOG.info(
        "Created book book_id=%s name=%s category=%s pdf=%s admin_id=%s",
        book.id,
        book.name,
        book.category,
        bool(book.pdf_path),
        actor.id,  # type: ignore[union-attr]
    )
    return book.as_dict()


def update_book(actor: Optional[SessionUser], book_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    ensure_admin(actor)
    cleaned = _validate_fields({k: v for k, v in updates.items() if k != "id"}, partial=True)
    book = books_repo.update_book(book_id, cleaned)
    if not book:
        raise BookNotFoundError("book_missing")
    LOG.info("Updated book book_id=%s fields=%s", book_id, sorted(cleaned))
    return book.as_dict()


def _restore_objects(snapshots: List[Tuple[str, str, bytes]]) -> None:
    for bucket, path, payload in snapshots:
        try:
            storage_service.upload(bucket, path, payload, upsert=True)
        except storage_service.StorageError:
            LOG.error("Could not restore object bucket=%s path=%s", bucket, path, exc_info=True)


def delete_book(actor: Optional[SessionUser], book_id: str) -> None:
    """Remove the stored objects, then the metadata row."""
    ensure_admin(actor)
    book = books_repo.get_book(book_id)
    if not book:
        raise BookNotFoundError("book_missing")

    targets = [
        (bucket, path)
        for bucket, path in ((constants.PDF_BUCKET, book.pdf_path), (constants.COVER_BUCKET, book.cover_path))
        if path
    ]
    snapshots: List[Tuple[str, str, bytes]] = []
    for bucket, path in targets:
        try:
            snapshots.append((bucket, path, storage_service.download(bucket, path)))
        except storage_service.ObjectNotFoundError:
            LOG.warning("Book object already missing book_id=%s bucket=%s path=%s", book_id, bucket, path)

    try:
        for bucket, path in targets:
            storage_service.remove(bucket, [path])
    except storage_service.StorageError:
        LOG.error("Book object removal failed book_id=%s; restoring %s object(s)", book_id, len(snapshots))
        _restore_objects(snapshots)
        raise

    try:
        deleted = books_repo.delete_book(book_id)
    except SQLAlchemyError as exc:
        LOG.error("Book row delete failed book_id=%s; restoring %s object(s)", book_id, len(snapshots))
        _restore_objects(snapshots)
        raise BookPersistenceError("book_delete_failed") from exc
    if not deleted:  # pragma: no cover - row vanished between lookup and delete
        raise BookNotFoundError("book_missing")
    LOG.info("Deleted book book_id=%s objects=%s admin_id=%s", book_id, len(targets), actor.id)  # type: ignore[union-attr]


__all__ = [
    "BookValidationError",
    "BookNotFoundError",
    "BookFileMissingError",
    "BookPersistenceError",
    "UploadedFile",
    "list_books",
    "get_book",
    "filter_by_category",
    "search_books",
    "recent_books",
    "category_counts",
    "total_size",
    "book_stats",
    "get_read_url",
    "get_cover_url",
    "create_book",
    "update_book",
    "delete_book",
]
