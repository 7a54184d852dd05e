"""Reading flows built on the local store and the upstream source."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from anyio import to_thread
from rapidfuzz import fuzz

from quran_wbw.core.logging import get_logger
from quran_wbw.models.records import Bookmark, Document, Preferences
from quran_wbw.remote.client import RemoteSource
from quran_wbw.store.local_store import LocalStore
from quran_wbw.utils.ids import new_bookmark_id
from quran_wbw.utils.time import now_ms

logger = get_logger(__name__)

DEFAULT_MIN_SCORE = 0.6


@dataclass(slots=True)
class DocumentListing:
    document: Document
    downloaded: bool


@dataclass(slots=True)
class SearchHit:
    document: Document
    score: float


class ReaderService:
    """Cache-first document loading plus bookmark and preference helpers.

    Store errors propagate unchanged; the remote source never raises.
    """

    def __init__(self, store: LocalStore, remote: RemoteSource) -> None:
        self.store = store
        self.remote = remote

    async def load_document(self, document_id: int, cache: bool = True) -> Document | None:
        """Return the stored document, fetching (and optionally caching) on a miss."""
        cached = await self.store.documents.get(document_id)
        if cached is not None:
            logger.debug("Document %s served from local store", document_id)
            return cached
        fetched = await to_thread.run_sync(self.remote.fetch_document_detail, document_id)
        if fetched is None:
            return None
        if cache:
            await self.store.documents.put(fetched)
            logger.info("Cached document %s for offline reading", document_id)
        return fetched

    async def download(self, document_id: int) -> Document | None:
        """Fetch a fresh copy upstream and store it, replacing any cached one."""
        fetched = await to_thread.run_sync(self.remote.fetch_document_detail, document_id)
        if fetched is None:
            logger.warning("Download of document %s failed: not available upstream", document_id)
            return None
        await self.store.documents.put(fetched)
        return fetched

    async def list_documents(self) -> list[DocumentListing]:
        summaries = await to_thread.run_sync(self.remote.fetch_document_list)
        downloaded = await self.store.downloaded_ids()
        return [
            DocumentListing(document=summary, downloaded=summary.document_id in downloaded)
            for summary in summaries
        ]

    async def search_offline(
        self,
        query: str,
        limit: int = 20,
        min_score: float = DEFAULT_MIN_SCORE,
    ) -> list[SearchHit]:
        """Fuzzy search over the names of stored documents.

        Substring matches score 1.0; otherwise the best token-set ratio over
        the three names is used. An empty query lists everything stored. Hits
        carry summaries without units.
        """
        documents = await self.store.documents.summaries()
        needle = query.strip().casefold()
        hits: list[SearchHit] = []
        for document in documents:
            score = 1.0 if not needle else _name_score(needle, document)
            if score >= min_score:
                hits.append(SearchHit(document=document, score=score))
        hits.sort(key=lambda hit: (-hit.score, hit.document.document_id))
        return hits[:limit]

    async def add_bookmark(self, document_id: int, unit_number: int, note: str | None = None) -> Bookmark:
        bookmark = Bookmark(
            id=new_bookmark_id(),
            document_id=document_id,
            unit_number=unit_number,
            note=note,
            created_at=now_ms(),
        )
        await self.store.bookmarks.put(bookmark)
        return bookmark

    async def update_preferences(self, **changes: Any) -> Preferences:
        """Apply ``changes`` to the current preferences and save the whole record."""
        current = await self.store.get_preferences()
        updated = Preferences.model_validate({**current.model_dump(), **changes})
        await self.store.save_preferences(updated)
        return updated


def _name_score(needle: str, document: Document) -> float:
    names = [document.display_name, document.localized_name, document.canonical_name]
    folded = [name.casefold() for name in names if name]
    if any(needle in name for name in folded):
        return 1.0
    return max((fuzz.token_set_ratio(needle, name) / 100.0 for name in folded), default=0.0)


__all__ = ["DocumentListing", "ReaderService", "SearchHit"]
