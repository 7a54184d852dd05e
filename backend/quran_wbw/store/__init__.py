"""Offline persistence for documents, bookmarks and preferences."""

from quran_wbw.core.errors import InitError, ReadError, StoreError, WriteError

from .local_store import BookmarkCollection, Collection, DocumentCollection, LocalStore

__all__ = [
    "BookmarkCollection",
    "Collection",
    "DocumentCollection",
    "InitError",
    "LocalStore",
    "ReadError",
    "StoreError",
    "WriteError",
]
