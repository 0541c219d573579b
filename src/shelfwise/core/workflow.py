"""Add-book submission: validate, generate a cover, assemble the record."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

import structlog

from .covers import CoverGenerationError, CoverSource
from .models import Book
from .validation import BookSubmission, validate_submission

log = structlog.get_logger()

GENERATION_FAILED_MESSAGE = "Failed to add book. The cover generation might have failed."
BUSY_MESSAGE = "A submission is already in progress."


class SubmissionState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    INVALID = "invalid"
    GENERATING = "generating"
    READY = "ready"
    FAILED = "failed"
    BUSY = "busy"  # rejected because another submission is in flight


@dataclass
class SubmissionResult:
    state: SubmissionState
    book: Book | None = None
    errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.state is SubmissionState.READY

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"success": self.success}
        if self.book is not None:
            data["book"] = self.book.to_dict()
        if self.errors:
            data["errors"] = self.errors
        return data


class SubmissionWorkflow:
    """Turn raw form fields into a new Book, or into errors.

    At most one submission runs at a time; a second one started while the
    cover request is pending is rejected with a BUSY result. The workflow
    never touches the collection: callers append ``result.book`` on success.
    """

    def __init__(self, generator: CoverSource) -> None:
        self.generator = generator
        self.state = SubmissionState.IDLE
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def submit(self, raw: Mapping[str, Any]) -> SubmissionResult:
        if self._in_flight:
            log.warning("submission_rejected_busy")
            return SubmissionResult(SubmissionState.BUSY, errors={"_general": [BUSY_MESSAGE]})

        self._in_flight = True
        try:
            return await self._run(raw)
        finally:
            self._in_flight = False
            self.state = SubmissionState.IDLE

    async def _run(self, raw: Mapping[str, Any]) -> SubmissionResult:
        self.state = SubmissionState.VALIDATING
        outcome = validate_submission(raw)
        if outcome.submission is None:
            self.state = SubmissionState.INVALID
            log.info("submission_invalid", fields=sorted(outcome.errors))
            return SubmissionResult(SubmissionState.INVALID, errors=outcome.errors)

        submission = outcome.submission
        self.state = SubmissionState.GENERATING
        cover_url = await self._generate_cover(submission)
        if not cover_url:
            self.state = SubmissionState.FAILED
            return SubmissionResult(
                SubmissionState.FAILED, errors={"_general": [GENERATION_FAILED_MESSAGE]}
            )

        book = Book(
            title=submission.title,
            author=submission.author,
            isbn=submission.isbn,
            category=submission.category,
            description=submission.description,
            status=submission.status,
            cover_image_url=cover_url,
        )
        self.state = SubmissionState.READY
        log.info("submission_ready", book_id=book.id, isbn=book.isbn)
        return SubmissionResult(SubmissionState.READY, book=book)

    async def _generate_cover(self, submission: BookSubmission) -> str:
        """Return the cover reference, or "" when generation failed."""
        try:
            cover_url = await self.generator.generate(
                submission.title, submission.author, submission.isbn
            )
        except CoverGenerationError as e:
            log.warning("cover_generation_failed", isbn=submission.isbn, error=str(e))
            return ""
        except Exception:
            log.exception("cover_generation_crashed", isbn=submission.isbn)
            return ""
        if not cover_url:
            log.warning("cover_generation_empty", isbn=submission.isbn)
            return ""
        return cover_url
