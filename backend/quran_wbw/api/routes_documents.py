"""Document API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from quran_wbw.api.dependencies import get_reader_service, get_store
from quran_wbw.models.dto import DeleteResponse, DocumentSummary, SearchHitResponse
from quran_wbw.models.records import Document
from quran_wbw.reader.service import ReaderService
from quran_wbw.store.local_store import LocalStore

router = APIRouter()


@router.get("", response_model=list[DocumentSummary], summary="List chapters with download status")
async def list_documents(service: ReaderService = Depends(get_reader_service)) -> list[DocumentSummary]:
    listings = await service.list_documents()
    return [DocumentSummary.from_document(item.document, downloaded=item.downloaded) for item in listings]


@router.get("/offline", response_model=list[DocumentSummary], summary="List chapters stored offline")
async def list_offline(store: LocalStore = Depends(get_store)) -> list[DocumentSummary]:
    documents = await store.documents.summaries()
    return [DocumentSummary.from_document(document, downloaded=True) for document in documents]


@router.get("/search", response_model=list[SearchHitResponse], summary="Search stored chapters by name")
async def search_offline(
    q: str = Query("", description="Name fragment in any script"),
    limit: int = Query(20, ge=1, le=114),
    service: ReaderService = Depends(get_reader_service),
) -> list[SearchHitResponse]:
    hits = await service.search_offline(q, limit=limit)
    return [
        SearchHitResponse(document=DocumentSummary.from_document(hit.document, downloaded=True), score=hit.score)
        for hit in hits
    ]


@router.get("/{document_id}", response_model=Document, summary="Load a chapter, cache first")
async def get_document(
    document_id: int,
    cache: bool = Query(True, description="Store the chapter if it had to be fetched"),
    service: ReaderService = Depends(get_reader_service),
) -> Document:
    document = await service.load_document(document_id, cache=cache)
    if document is None:
        raise HTTPException(status_code=404, detail="Document not available")
    return document


@router.post("/{document_id}/download", response_model=DocumentSummary, summary="Download a chapter for offline use")
async def download_document(
    document_id: int,
    service: ReaderService = Depends(get_reader_service),
) -> DocumentSummary:
    document = await service.download(document_id)
    if document is None:
        raise HTTPException(status_code=502, detail="Document not available upstream")
    return DocumentSummary.from_document(document, downloaded=True)


@router.delete("/{document_id}", response_model=DeleteResponse, summary="Remove a chapter from offline storage")
async def delete_document(document_id: int, store: LocalStore = Depends(get_store)) -> DeleteResponse:
    existed = await store.documents.contains(document_id)
    await store.documents.delete(document_id)
    return DeleteResponse(status="ok" if existed else "noop", deleted=int(existed))


__all__ = ["router"]
