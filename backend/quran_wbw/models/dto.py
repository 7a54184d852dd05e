"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from quran_wbw.models.records import Bookmark, Category, Document


class DocumentSummary(BaseModel):
    document_id: int
    display_name: str
    localized_name: str
    canonical_name: str
    unit_count: int
    category: Category | None = None
    downloaded: bool = False

    @classmethod
    def from_document(cls, document: Document, downloaded: bool = False) -> "DocumentSummary":
        return cls(
            document_id=document.document_id,
            display_name=document.display_name,
            localized_name=document.localized_name,
            canonical_name=document.canonical_name,
            unit_count=document.unit_count,
            category=document.category,
            downloaded=downloaded,
        )


class SearchHitResponse(BaseModel):
    document: DocumentSummary
    score: float


class BookmarkCreateRequest(BaseModel):
    document_id: int = Field(ge=1)
    unit_number: int = Field(ge=1)
    note: str | None = None


class BookmarkListResponse(BaseModel):
    bookmarks: list[Bookmark]


class DeleteResponse(BaseModel):
    status: Literal["ok", "noop"]
    deleted: int


class ErrorResponse(BaseModel):
    error: str
    detail: str
    collection: str | None = None


__all__ = [
    "BookmarkCreateRequest",
    "BookmarkListResponse",
    "DeleteResponse",
    "DocumentSummary",
    "ErrorResponse",
    "SearchHitResponse",
]
