"""Bookmark and preference API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from quran_wbw.api.dependencies import get_reader_service, get_store
from quran_wbw.models.dto import BookmarkCreateRequest, BookmarkListResponse, DeleteResponse
from quran_wbw.models.records import Bookmark, Preferences
from quran_wbw.reader.service import ReaderService
from quran_wbw.store.local_store import LocalStore

router = APIRouter()


@router.get("/bookmarks", response_model=BookmarkListResponse, summary="List bookmarks")
async def list_bookmarks(
    document_id: int | None = Query(None, ge=1, description="Only bookmarks in this chapter"),
    store: LocalStore = Depends(get_store),
) -> BookmarkListResponse:
    if document_id is not None:
        bookmarks = await store.bookmarks.for_document(document_id)
    else:
        bookmarks = await store.bookmarks.get_all()
    return BookmarkListResponse(bookmarks=bookmarks)


@router.post("/bookmarks", response_model=Bookmark, status_code=201, summary="Bookmark a verse")
async def create_bookmark(
    request: BookmarkCreateRequest,
    service: ReaderService = Depends(get_reader_service),
) -> Bookmark:
    return await service.add_bookmark(request.document_id, request.unit_number, note=request.note)


@router.delete("/bookmarks/{bookmark_id}", response_model=DeleteResponse, summary="Remove a bookmark")
async def delete_bookmark(bookmark_id: str, store: LocalStore = Depends(get_store)) -> DeleteResponse:
    existed = await store.bookmarks.contains(bookmark_id)
    await store.bookmarks.delete(bookmark_id)
    return DeleteResponse(status="ok" if existed else "noop", deleted=int(existed))


@router.get("/preferences", response_model=Preferences, summary="Current reader preferences")
async def get_preferences(store: LocalStore = Depends(get_store)) -> Preferences:
    return await store.get_preferences()


@router.put("/preferences", response_model=Preferences, summary="Replace reader preferences")
async def put_preferences(preferences: Preferences, store: LocalStore = Depends(get_store)) -> Preferences:
    await store.save_preferences(preferences)
    return preferences


__all__ = ["router"]
