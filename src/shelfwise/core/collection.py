"""The user's book collection, mirrored into durable storage."""

from __future__ import annotations

import json
import unicodedata

import structlog
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .models import Book, BookStatus, SortOption
from .storage import KeyValueStore
from .validation import ISBN_MAX_LENGTH, ISBN_MIN_LENGTH

log = structlog.get_logger()

DEFAULT_STORAGE_KEY = "shelfwise-books"


class StoredBook(BaseModel):
    """Schema for one record of a persisted snapshot."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    author: str = Field(min_length=1)
    isbn: str = Field(min_length=ISBN_MIN_LENGTH, max_length=ISBN_MAX_LENGTH)
    category: str = Field(min_length=1)
    description: str | None = None
    cover_image_url: str = Field(alias="coverImageUrl", min_length=1)
    status: BookStatus

    def to_book(self) -> Book:
        return Book(
            id=self.id,
            title=self.title,
            author=self.author,
            isbn=self.isbn,
            category=self.category,
            description=self.description,
            cover_image_url=self.cover_image_url,
            status=self.status,
        )


_snapshot = TypeAdapter(list[StoredBook])


def collation_key(text: str) -> tuple[str, str]:
    """Sort key that ignores case and accents, falling back to the raw text."""
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold(), text


def parse_snapshot(raw: str) -> list[Book]:
    """Decode a persisted snapshot, rejecting it whole if any record is bad."""
    books = [stored.to_book() for stored in _snapshot.validate_json(raw)]
    ids = [book.id for book in books]
    if len(set(ids)) != len(ids):
        raise ValueError("Snapshot contains duplicate book ids")
    return books


class CollectionStore:
    """Ordered list of books, written back as a whole snapshot on every change."""

    def __init__(self, storage: KeyValueStore, key: str = DEFAULT_STORAGE_KEY) -> None:
        self.storage = storage
        self.key = key
        self._books: list[Book] = []

    def hydrate(self) -> None:
        """Load the snapshot once at startup.

        A missing snapshot starts an empty collection. So does a malformed
        one: the failure is logged and the bad data is never partially used.
        """
        raw = self.storage.get(self.key)
        if raw is None:
            self._books = []
            log.info("collection_hydrated", key=self.key, books=0)
            return
        try:
            self._books = parse_snapshot(raw)
        except (ValidationError, ValueError) as e:
            log.warning("collection_snapshot_invalid", key=self.key, error=str(e))
            self._books = []
            return
        log.info("collection_hydrated", key=self.key, books=len(self._books))

    def _persist(self) -> None:
        snapshot = json.dumps([book.to_dict() for book in self._books])
        self.storage.set(self.key, snapshot)

    def add(self, book: Book) -> None:
        if not book.cover_image_url:
            raise ValueError("Books cannot be stored without a cover image")
        if self.get(book.id) is not None:
            raise ValueError(f"Book id already in collection: {book.id}")
        self._books.append(book)
        self._persist()
        log.info("book_added", book_id=book.id, status=book.status.value, books=len(self._books))

    def remove(self, book_id: str) -> bool:
        """Drop a book by id. Unknown ids are ignored; returns whether one was removed."""
        remaining = [book for book in self._books if book.id != book_id]
        if len(remaining) == len(self._books):
            log.debug("book_remove_missing", book_id=book_id)
            return False
        self._books = remaining
        self._persist()
        log.info("book_removed", book_id=book_id, books=len(self._books))
        return True

    def get(self, book_id: str) -> Book | None:
        return next((b for b in self._books if b.id == book_id), None)

    def books(self) -> list[Book]:
        return list(self._books)

    def __len__(self) -> int:
        return len(self._books)

    def view(
        self, sort: SortOption | None = None, status: BookStatus | None = None
    ) -> list[Book]:
        """Books with the given status (all when None), sorted for display."""
        books = [b for b in self._books if status is None or b.status == status]
        if sort is None:
            return books
        return sorted(
            books,
            key=lambda b: collation_key(getattr(b, sort.field_name)),
            reverse=sort.descending,
        )
