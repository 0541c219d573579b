"""FastAPI web application for ShelfWise."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import structlog
import uvicorn
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from ..core.collection import CollectionStore
from ..core.config import Settings
from ..core.covers import CoverGenerator, CoverSource
from ..core.models import BookStatus, SortOption
from ..core.storage import KeyValueStore, SqliteStore
from ..core.validation import validate_submission
from ..core.workflow import SubmissionState, SubmissionWorkflow

log = structlog.get_logger()

STATIC_DIR = Path(__file__).parent / "static"
MAX_BODY_BYTES = 50_000  # ~50 KB max request body
VERSION = "0.1.0"

_RESULT_STATUS_CODES = {
    SubmissionState.READY: 201,
    SubmissionState.INVALID: 400,
    SubmissionState.BUSY: 409,
    SubmissionState.FAILED: 502,
}

router = APIRouter()


async def _json_fields(request: Request) -> dict | JSONResponse:
    """Read the request body as a JSON object, or build the error response."""
    content_length = request.headers.get("content-length")
    if content_length and not content_length.isdigit():
        return JSONResponse({"error": "Invalid Content-Length."}, status_code=400)
    if content_length and int(content_length) > MAX_BODY_BYTES:
        return JSONResponse({"error": "Request too large."}, status_code=413)

    try:
        body = await request.json()
    except ValueError:
        return JSONResponse({"error": "Request body must be valid JSON."}, status_code=400)

    if not isinstance(body, dict):
        return JSONResponse({"error": "Request body must be a JSON object."}, status_code=400)
    return body


@router.get("/health")
async def health(request: Request):
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
        "environment": request.app.state.settings.environment,
        "books": len(request.app.state.collection),
    }


@router.get("/", response_class=HTMLResponse)
async def index():
    return (STATIC_DIR / "index.html").read_text()


@router.get("/api/books")
async def list_books(request: Request, sort: str | None = None, status: str | None = None):
    try:
        sort_option = SortOption(sort) if sort else None
        status_filter = BookStatus(status) if status else None
    except ValueError:
        return JSONResponse({"error": "Unknown sort or status."}, status_code=400)

    collection: CollectionStore = request.app.state.collection
    books = collection.view(sort=sort_option, status=status_filter)
    return {"books": [book.to_dict() for book in books]}


@router.post("/api/books/validate")
async def validate_book(request: Request):
    fields = await _json_fields(request)
    if isinstance(fields, JSONResponse):
        return fields
    outcome = validate_submission(fields)
    return {"valid": outcome.valid, "errors": outcome.errors}


@router.post("/api/books")
async def add_book(request: Request):
    fields = await _json_fields(request)
    if isinstance(fields, JSONResponse):
        return fields

    workflow: SubmissionWorkflow = request.app.state.workflow
    result = await workflow.submit(fields)
    body = result.to_dict()
    if result.success:
        request.app.state.collection.add(result.book)
        # The page switches to the tab matching the new book
        body["active_status"] = result.book.status.value
    return JSONResponse(body, status_code=_RESULT_STATUS_CODES[result.state])


@router.delete("/api/books/{book_id}")
async def delete_book(request: Request, book_id: str):
    request.app.state.collection.remove(book_id)
    return Response(status_code=204)


def create_app(
    settings: Settings | None = None,
    *,
    store: KeyValueStore | None = None,
    generator: CoverSource | None = None,
) -> FastAPI:
    """Build the app; the collection is hydrated from storage exactly once here."""
    if settings is None:
        settings = Settings.from_env()
    if store is None:
        store = SqliteStore(settings.db_path)
    if generator is None:
        generator = CoverGenerator(
            api_key=settings.api_key,
            model=settings.cover_model,
            api_base=settings.cover_api_base,
            timeout=settings.cover_timeout,
        )

    collection = CollectionStore(store, key=settings.storage_key)
    collection.hydrate()

    app = FastAPI(title="ShelfWise", docs_url=None, redoc_url=None)
    app.state.settings = settings
    app.state.collection = collection
    app.state.workflow = SubmissionWorkflow(generator)

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
    app.include_router(router)
    log.info("app_created", environment=settings.environment, books=len(collection))
    return app


def main():
    settings = Settings.from_env()
    uvicorn.run(
        "shelfwise.web.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=settings.port,
        reload=settings.environment == "dev",
    )
