"""FastAPI application setup for the offline reader backend."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quran_wbw.api.dependencies import get_app_settings, get_reader_service, get_store
from quran_wbw.api.routes_admin import router as admin_router
from quran_wbw.api.routes_bookmarks import router as bookmarks_router
from quran_wbw.api.routes_documents import router as documents_router
from quran_wbw.core.errors import InitError, StoreError
from quran_wbw.core.logging import configure_logging, get_logger
from quran_wbw.models.dto import ErrorResponse

configure_logging(get_app_settings().log_level, use_json=get_app_settings().log_json)
logger = get_logger(__name__)

app = FastAPI(
    title="Quran Word-by-Word",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://127.0.0.1:8080",
        "http://localhost:8080",
    ],
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

app.include_router(documents_router, prefix="/documents", tags=["documents"])
app.include_router(bookmarks_router, prefix="", tags=["bookmarks"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    status_code = 503 if isinstance(exc, InitError) else 500
    body = ErrorResponse(error=exc.kind, detail=str(exc), collection=exc.collection)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.on_event("startup")
async def startup() -> None:
    """Open the local store so the first request does not pay for it."""
    get_reader_service()
    try:
        await get_store().open()
    except InitError as exc:
        # Requests keep failing with 503 until the store can be opened.
        logger.error("Local store unavailable at startup: %s", exc)
