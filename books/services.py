"""Read and write access to the book catalog used by other apps."""

from __future__ import annotations

import logging
from typing import Iterable, List

from .models import Book
from .utils import normalize_ids

logger = logging.getLogger(__name__)


def find_book(book_id) -> Book:
    return Book.objects.select_related("owner").get(pk=book_id)


def find_books(book_ids: Iterable) -> List[Book]:
    """Return books in the order requested.

    Raises ``Book.DoesNotExist`` naming every id that is not in the catalog.
    """

    ids = normalize_ids(book_ids)
    books = Book.objects.select_related("owner").in_bulk(ids)
    missing = [book_id for book_id in ids if book_id not in books]
    if missing:
        raise Book.DoesNotExist(
            "Books not found: " + ", ".join(str(book_id) for book_id in missing)
        )
    return [books[book_id] for book_id in ids]


def set_book_status(book_id, status: str) -> Book:
    """Write the single authoritative status of a book.

    Concurrent writers are resolved last-writer-wins.
    """

    if status not in Book.Status.values:
        raise ValueError(f"Unknown book status: {status!r}")
    book = find_book(book_id)
    if book.status == status:
        return book
    previous = book.status
    book.status = status
    book.save(update_fields=["status", "updated_at"])
    logger.info("Book %s status changed %s -> %s", book.pk, previous, status)
    return book


def is_available(book: Book) -> bool:
    return book.status == Book.Status.AVAILABLE


__all__ = ["find_book", "find_books", "is_available", "set_book_status"]
