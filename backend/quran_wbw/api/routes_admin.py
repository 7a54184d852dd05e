"""Administrative routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from quran_wbw.api.dependencies import get_store
from quran_wbw.core.metrics import CACHED_DOCUMENTS, metrics_response
from quran_wbw.remote.client import ATTRIBUTION
from quran_wbw.store.local_store import LocalStore

router = APIRouter()


@router.get("/health", summary="Liveness and storage status")
async def health(store: LocalStore = Depends(get_store)) -> dict[str, object]:
    await store.open()
    return {
        "ok": True,
        "schema_version": store.schema_version,
        "documents": await store.documents.count(),
        "bookmarks": await store.bookmarks.count(),
    }


@router.get("/about", summary="Content sources and licensing")
async def about() -> dict[str, str]:
    return dict(ATTRIBUTION)


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics(store: LocalStore = Depends(get_store)):
    CACHED_DOCUMENTS.set(await store.documents.count())
    return metrics_response()


__all__ = ["router"]
