from __future__ import annotations

import pytest

from shelfwise.core.collection import CollectionStore
from shelfwise.core.models import Book, BookStatus
from shelfwise.core.storage import MemoryStore

DUNE_FIELDS = {
    "title": "Dune",
    "author": "Frank Herbert",
    "isbn": "9780441013593",
    "category": "Sci-Fi",
    "status": "owned",
}


class StubGenerator:
    """Cover source returning a canned reference, or raising."""

    def __init__(self, result: str = "img://dune.png", error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[tuple[str, str, str]] = []

    async def generate(self, title: str, author: str, isbn: str) -> str:
        self.calls.append((title, author, isbn))
        if self.error is not None:
            raise self.error
        return self.result


def make_book(title: str, author: str = "Anon", status: BookStatus = BookStatus.OWNED, **kwargs) -> Book:
    return Book(
        title=title,
        author=author,
        isbn=kwargs.pop("isbn", "9780000000000"),
        category=kwargs.pop("category", "Fiction"),
        cover_image_url=kwargs.pop("cover_image_url", f"img://{title}.png"),
        status=status,
        **kwargs,
    )


@pytest.fixture
def dune_fields() -> dict[str, str]:
    return dict(DUNE_FIELDS)


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def collection(memory_store: MemoryStore) -> CollectionStore:
    store = CollectionStore(memory_store)
    store.hydrate()
    return store
