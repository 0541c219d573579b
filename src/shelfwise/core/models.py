"""Data models for tracked books."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum


class BookStatus(str, Enum):
    OWNED = "owned"
    WISHLIST = "wishlist"


class SortOption(str, Enum):
    TITLE_ASC = "title-asc"
    TITLE_DESC = "title-desc"
    AUTHOR_ASC = "author-asc"
    AUTHOR_DESC = "author-desc"

    @property
    def field_name(self) -> str:
        return self.value.split("-", 1)[0]

    @property
    def descending(self) -> bool:
        return self.value.endswith("-desc")


def new_book_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Book:
    title: str
    author: str
    isbn: str
    category: str
    cover_image_url: str
    status: BookStatus
    description: str | None = None
    id: str = field(default_factory=new_book_id)

    def to_dict(self) -> dict:
        """Serialize using the camelCase keys of the persisted snapshot."""
        data = {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "category": self.category,
            "coverImageUrl": self.cover_image_url,
            "status": self.status.value,
        }
        if self.description is not None:
            data["description"] = self.description
        return data
