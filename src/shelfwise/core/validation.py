"""Structural validation of raw add-book form input.

The same rules back the pre-check endpoint the page calls while the user is
typing and the authoritative check inside the submission workflow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from .models import BookStatus

# ISBN-10 and ISBN-13, no checksum verification
ISBN_MIN_LENGTH = 10
ISBN_MAX_LENGTH = 13

REQUIRED_MESSAGES = {
    "title": "Title is required.",
    "author": "Author is required.",
    "isbn": "ISBN is required.",
    "category": "Category is required.",
    "status": "You must select a status.",
}
ISBN_MESSAGE = "A valid ISBN is required."
STATUS_MESSAGE = "Status must be 'owned' or 'wishlist'."


class BookSubmission(BaseModel):
    """Validated add-book form fields."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    title: str = Field(None, validate_default=True)
    author: str = Field(None, validate_default=True)
    isbn: str = Field(None, validate_default=True)
    category: str = Field(None, validate_default=True)
    status: BookStatus = Field(None, validate_default=True)
    description: str | None = None

    @field_validator("title", "author", "isbn", "category", mode="before")
    @classmethod
    def _required(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or value == "":
            raise PydanticCustomError("required", REQUIRED_MESSAGES[info.field_name])
        return value

    @field_validator("isbn")
    @classmethod
    def _isbn_length(cls, value: str) -> str:
        if not ISBN_MIN_LENGTH <= len(value) <= ISBN_MAX_LENGTH:
            raise PydanticCustomError("isbn_length", ISBN_MESSAGE)
        return value

    @field_validator("status", mode="before")
    @classmethod
    def _status_choice(cls, value: Any) -> BookStatus:
        if value is None or value == "":
            raise PydanticCustomError("required", REQUIRED_MESSAGES["status"])
        try:
            return BookStatus(value)
        except (ValueError, TypeError):
            raise PydanticCustomError("status_choice", STATUS_MESSAGE) from None

    @field_validator("description", mode="before")
    @classmethod
    def _blank_description(cls, value: Any) -> Any:
        # The form sends an empty string when the field is left blank
        return None if value == "" else value


@dataclass
class ValidationOutcome:
    submission: BookSubmission | None = None
    errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return self.submission is not None


def flatten_errors(exc: ValidationError) -> dict[str, list[str]]:
    """Group pydantic errors into field name -> messages."""
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        name = str(error["loc"][0]) if error["loc"] else "_general"
        errors.setdefault(name, []).append(error["msg"])
    return errors


def validate_submission(raw: Mapping[str, Any]) -> ValidationOutcome:
    """Check raw form fields; never raises for bad input."""
    try:
        submission = BookSubmission.model_validate(dict(raw))
    except ValidationError as exc:
        return ValidationOutcome(errors=flatten_errors(exc))
    return ValidationOutcome(submission=submission)
