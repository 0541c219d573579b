from __future__ import annotations

import asyncio

from conftest import StubGenerator
from shelfwise.core.covers import CoverGenerationError
from shelfwise.core.models import BookStatus
from shelfwise.core.workflow import (
    BUSY_MESSAGE,
    GENERATION_FAILED_MESSAGE,
    SubmissionState,
    SubmissionWorkflow,
)


def _submit(workflow: SubmissionWorkflow, fields: dict):
    return asyncio.run(workflow.submit(fields))


def test_dune_submission_is_ready(dune_fields):
    generator = StubGenerator("img://dune.png")
    workflow = SubmissionWorkflow(generator)

    result = _submit(workflow, dune_fields)

    assert result.success
    assert result.state is SubmissionState.READY
    assert workflow.state is SubmissionState.IDLE
    book = result.book
    assert (book.title, book.author, book.isbn, book.category) == (
        "Dune",
        "Frank Herbert",
        "9780441013593",
        "Sci-Fi",
    )
    assert book.status is BookStatus.OWNED
    assert book.cover_image_url == "img://dune.png"
    assert book.description is None
    assert book.id
    assert generator.calls == [("Dune", "Frank Herbert", "9780441013593")]


def test_ids_are_unique_across_submissions(dune_fields):
    workflow = SubmissionWorkflow(StubGenerator())

    ids = {_submit(workflow, dune_fields).book.id for _ in range(20)}

    assert len(ids) == 20


def test_invalid_input_never_generates(dune_fields):
    del dune_fields["title"]
    generator = StubGenerator()
    workflow = SubmissionWorkflow(generator)

    result = _submit(workflow, dune_fields)

    assert result.state is SubmissionState.INVALID
    assert "title" in result.errors
    assert result.book is None
    assert generator.calls == []


def test_empty_cover_reference_fails(dune_fields):
    workflow = SubmissionWorkflow(StubGenerator(""))

    result = _submit(workflow, dune_fields)

    assert not result.success
    assert result.state is SubmissionState.FAILED
    assert result.book is None
    assert result.errors == {"_general": [GENERATION_FAILED_MESSAGE]}


def test_generator_error_fails(dune_fields):
    workflow = SubmissionWorkflow(StubGenerator(error=CoverGenerationError("quota")))

    result = _submit(workflow, dune_fields)

    assert result.state is SubmissionState.FAILED
    assert result.errors == {"_general": [GENERATION_FAILED_MESSAGE]}


def test_unexpected_generator_error_fails(dune_fields):
    workflow = SubmissionWorkflow(StubGenerator(error=RuntimeError("socket closed")))

    result = _submit(workflow, dune_fields)

    assert result.state is SubmissionState.FAILED
    assert not workflow.in_flight


def test_second_submission_rejected_while_generating(dune_fields):
    class BlockingGenerator:
        def __init__(self) -> None:
            self.started = asyncio.Event()
            self.release = asyncio.Event()
            self.calls = 0

        async def generate(self, title: str, author: str, isbn: str) -> str:
            self.calls += 1
            self.started.set()
            await self.release.wait()
            return "img://dune.png"

    async def scenario():
        generator = BlockingGenerator()
        workflow = SubmissionWorkflow(generator)
        first = asyncio.create_task(workflow.submit(dune_fields))
        await generator.started.wait()
        assert workflow.state is SubmissionState.GENERATING

        second = await workflow.submit(dune_fields)

        generator.release.set()
        return generator, workflow, await first, second

    generator, workflow, first, second = asyncio.run(scenario())

    assert first.success
    assert second.state is SubmissionState.BUSY
    assert second.errors == {"_general": [BUSY_MESSAGE]}
    assert generator.calls == 1
    assert not workflow.in_flight


def test_to_dict_shapes(dune_fields):
    workflow = SubmissionWorkflow(StubGenerator())

    ready = _submit(workflow, dune_fields).to_dict()
    invalid = _submit(workflow, {}).to_dict()

    assert ready["success"] is True
    assert ready["book"]["coverImageUrl"] == "img://dune.png"
    assert "errors" not in ready
    assert invalid["success"] is False
    assert "book" not in invalid
    assert set(invalid["errors"]) == {"title", "author", "isbn", "category", "status"}


def test_state_returns_to_idle_after_each_attempt(dune_fields):
    workflow = SubmissionWorkflow(StubGenerator(""))

    failed = _submit(workflow, dune_fields)
    invalid = _submit(workflow, {})

    assert failed.state is SubmissionState.FAILED
    assert invalid.state is SubmissionState.INVALID
    assert workflow.state is SubmissionState.IDLE
    assert not workflow.in_flight
