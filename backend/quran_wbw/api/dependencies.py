"""Shared FastAPI dependencies.

The store is process-wide state: created on first use from settings and
kept for the life of the process. Tests replace or reset these globals.
"""

from __future__ import annotations

from functools import lru_cache

from quran_wbw.core.config import Settings, get_settings
from quran_wbw.reader.service import ReaderService
from quran_wbw.remote.client import QuranApiClient, RemoteSource
from quran_wbw.store.local_store import LocalStore

_STORE: LocalStore | None = None
_REMOTE: RemoteSource | None = None
_READER: ReaderService | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_store() -> LocalStore:
    global _STORE
    if _STORE is None:
        _STORE = LocalStore.from_settings(get_app_settings())
    return _STORE


def get_remote() -> RemoteSource:
    global _REMOTE
    if _REMOTE is None:
        _REMOTE = QuranApiClient(get_app_settings())
    return _REMOTE


def get_reader_service() -> ReaderService:
    global _READER
    if _READER is None:
        _READER = ReaderService(store=get_store(), remote=get_remote())
    return _READER


__all__ = [
    "get_app_settings",
    "get_reader_service",
    "get_remote",
    "get_store",
]
