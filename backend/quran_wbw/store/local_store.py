"""Async persistence facade over the offline database.

``LocalStore`` owns one ``SQLiteDatabase`` handle. Each public operation is
its own transaction, run on a worker thread while the calling task is
suspended. A single-slot capacity limiter keeps the shared connection on
one thread at a time, so calls from concurrent tasks are serialized in
arrival order and the last committed write to a key wins.
"""

from __future__ import annotations

import sqlite3
import time
from typing import Any, Callable, Generic, Mapping, Sequence, TypeVar

import anyio
import orjson
from anyio import to_thread
from pydantic import BaseModel, ValidationError

from quran_wbw.core.config import Settings
from quran_wbw.core.errors import InitError, ReadError, StoreError, WriteError
from quran_wbw.core.logging import get_logger
from quran_wbw.core.metrics import STORE_LATENCY, STORE_OPERATIONS
from quran_wbw.db.schema import (
    BOOKMARKS,
    DOCUMENTS,
    PREFERENCES,
    PREFERENCES_KEY,
    SCHEMA_VERSION,
    CollectionSpec,
    collection,
)
from quran_wbw.db.sqlite import SQLiteDatabase
from quran_wbw.models.records import Bookmark, Document, Preferences

logger = get_logger(__name__)

R = TypeVar("R", bound=BaseModel)
T = TypeVar("T")

_ENGINE_ERRORS = (sqlite3.Error, OSError, OverflowError)

# Range of an SQLite INTEGER.
_MIN_INTEGER_KEY = -(2**63)
_MAX_INTEGER_KEY = 2**63 - 1


class LocalStore:
    """Documents, bookmarks and preferences persisted for offline reading."""

    def __init__(self, database: SQLiteDatabase, schema_version: int = SCHEMA_VERSION) -> None:
        self.database = database
        self.schema_version = schema_version
        self._ready = False
        self._open_lock: anyio.Lock | None = None
        self._limiter: anyio.CapacityLimiter | None = None
        self.documents = DocumentCollection(self)
        self.bookmarks = BookmarkCollection(self)

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalStore":
        return cls(SQLiteDatabase(settings.db_path, busy_timeout=settings.busy_timeout))

    @property
    def is_open(self) -> bool:
        return self._ready

    async def open(self) -> SQLiteDatabase:
        """Open the database and apply any pending schema upgrade.

        Safe to call any number of times, including concurrently: the first
        caller performs the upgrade pass while the others wait for it.
        """
        if self._ready:
            return self.database
        if self._open_lock is None:
            self._open_lock = anyio.Lock()
        async with self._open_lock:
            if not self._ready:
                applied = await self._in_thread(self._open_sync)
                self._ready = True
                logger.info(
                    "Opened local store at %s",
                    self.database.db_path,
                    extra={"ctx_schema_version": self.schema_version, "ctx_upgraded": bool(applied)},
                )
        return self.database

    def _open_sync(self) -> list[str]:
        self.database.connect()
        try:
            return self.database.ensure_schema(self.schema_version)
        except InitError:
            self.database.close()
            raise

    async def close(self) -> None:
        """Release the handle; the next operation opens it again."""
        if self._open_lock is None:
            self._open_lock = anyio.Lock()
        async with self._open_lock:
            await self._in_thread(self.database.close)
            self._ready = False

    # Preferences ------------------------------------------------------

    async def get_preferences(self) -> Preferences:
        """Stored preferences, or the documented defaults when none exist."""
        spec = collection(PREFERENCES)
        row = await self.run(
            PREFERENCES,
            "get",
            ReadError,
            self.database.query_one,
            f"SELECT record_json FROM {spec.name} WHERE {spec.key_column} = ?",
            [PREFERENCES_KEY],
        )
        if row is None:
            return Preferences.defaults()
        return decode_record(Preferences, row["record_json"], PREFERENCES)

    async def save_preferences(self, preferences: Preferences | Mapping[str, Any]) -> None:
        """Replace the preferences row wholesale."""
        record = coerce_record(Preferences, preferences, PREFERENCES)
        payload = encode_record(record, PREFERENCES)
        spec = collection(PREFERENCES)
        await self.run(
            PREFERENCES,
            "put",
            WriteError,
            self._write,
            f"INSERT OR REPLACE INTO {spec.name} ({spec.key_column}, record_json) VALUES (?, ?)",
            [PREFERENCES_KEY, payload],
        )

    # Presence ---------------------------------------------------------

    async def is_downloaded(self, document_id: int) -> bool:
        return await self.documents.contains(document_id)

    async def downloaded_ids(self) -> set[int]:
        return set(await self.documents.keys())

    # Execution helpers --------------------------------------------------

    async def run(
        self,
        collection_name: str,
        operation: str,
        error_cls: type[StoreError],
        func: Callable[..., T],
        *args: Any,
    ) -> T:
        """Run ``func`` against the open database as one store operation.

        Engine failures are logged and re-raised as ``error_cls``.
        """
        await self.open()
        started = time.perf_counter()
        try:
            result = await self._in_thread(func, *args)
        except _ENGINE_ERRORS as exc:
            STORE_OPERATIONS.labels(collection_name, operation, "error").inc()
            logger.exception(
                "%s on %s failed: %s",
                operation,
                collection_name,
                exc,
                extra={"ctx_collection": collection_name, "ctx_operation": operation},
            )
            raise error_cls(
                f"{operation} on {collection_name} failed: {exc}", collection=collection_name
            ) from exc
        STORE_OPERATIONS.labels(collection_name, operation, "ok").inc()
        STORE_LATENCY.labels(collection_name, operation).observe(time.perf_counter() - started)
        return result

    async def _in_thread(self, func: Callable[..., T], *args: Any) -> T:
        if self._limiter is None:
            self._limiter = anyio.CapacityLimiter(1)
        return await to_thread.run_sync(func, *args, limiter=self._limiter)

    def _write(self, sql: str, params: Sequence[Any]) -> int:
        with self.database.transaction() as cursor:
            cursor.execute(sql, params)
            return cursor.rowcount


class Collection(Generic[R]):
    """Keyed record collection sharing the store's database handle."""

    spec: CollectionSpec
    model: type[R]
    key_type: type = str

    def __init__(self, store: LocalStore) -> None:
        self.store = store

    @property
    def name(self) -> str:
        return self.spec.name

    def key_of(self, record: R) -> Any:
        return getattr(record, self.spec.key_column)

    def index_values(self, record: R) -> tuple[Any, ...]:
        return tuple(getattr(record, column) for column, _ in self.spec.columns)

    def coerce_key(self, key: Any) -> Any | None:
        """``key`` if it can name a record here, else ``None``.

        Keys are not converted: ``"1"`` never finds document 1.
        """
        if self.key_type is int:
            if isinstance(key, bool) or not isinstance(key, int):
                return None
            return key if _MIN_INTEGER_KEY <= key <= _MAX_INTEGER_KEY else None
        return key if isinstance(key, self.key_type) else None

    async def put(self, record: R | Mapping[str, Any]) -> None:
        """Insert or fully replace the record stored under its key."""
        validated = coerce_record(self.model, record, self.name)
        payload = encode_record(validated, self.name)
        columns = [self.spec.key_column, *(column for column, _ in self.spec.columns), "record_json"]
        placeholders = ", ".join("?" for _ in columns)
        await self.store.run(
            self.name,
            "put",
            WriteError,
            self.store._write,
            f"INSERT OR REPLACE INTO {self.name} ({', '.join(columns)}) VALUES ({placeholders})",
            [self.key_of(validated), *self.index_values(validated), payload],
        )

    async def get(self, key: Any) -> R | None:
        """The record under ``key``, or ``None`` when absent."""
        key = self.coerce_key(key)
        if key is None:
            return None
        row = await self.store.run(
            self.name,
            "get",
            ReadError,
            self.store.database.query_one,
            f"SELECT record_json FROM {self.name} WHERE {self.spec.key_column} = ?",
            [key],
        )
        if row is None:
            return None
        return decode_record(self.model, row["record_json"], self.name)

    async def get_all(self) -> list[R]:
        return await self._select(f"SELECT record_json FROM {self.name} ORDER BY {self.spec.key_column}")

    async def delete(self, key: Any) -> None:
        """Remove the record under ``key``; absent keys are a no-op."""
        key = self.coerce_key(key)
        if key is None:
            return
        await self.store.run(
            self.name,
            "delete",
            WriteError,
            self.store._write,
            f"DELETE FROM {self.name} WHERE {self.spec.key_column} = ?",
            [key],
        )

    async def contains(self, key: Any) -> bool:
        key = self.coerce_key(key)
        if key is None:
            return False
        row = await self.store.run(
            self.name,
            "contains",
            ReadError,
            self.store.database.query_one,
            f"SELECT 1 FROM {self.name} WHERE {self.spec.key_column} = ?",
            [key],
        )
        return row is not None

    async def keys(self) -> list[Any]:
        rows = await self.store.run(
            self.name,
            "keys",
            ReadError,
            self.store.database.query,
            f"SELECT {self.spec.key_column} AS k FROM {self.name} ORDER BY {self.spec.key_column}",
        )
        return [row["k"] for row in rows]

    async def count(self) -> int:
        row = await self.store.run(
            self.name,
            "count",
            ReadError,
            self.store.database.query_one,
            f"SELECT COUNT(*) AS n FROM {self.name}",
        )
        return int(row["n"]) if row else 0

    async def _select(self, sql: str, params: Sequence[Any] | None = None, operation: str = "get_all") -> list[R]:
        rows = await self.store.run(self.name, operation, ReadError, self.store.database.query, sql, params)
        return [decode_record(self.model, row["record_json"], self.name) for row in rows]


class DocumentCollection(Collection[Document]):
    spec = collection(DOCUMENTS)
    model = Document
    key_type = int

    async def summaries(self) -> list[Document]:
        """Stored documents without their units or provenance, by id."""
        return await self._select(
            "SELECT json_remove(record_json, '$.units', '$.provenance') AS record_json "
            f"FROM {self.name} ORDER BY document_id",
            operation="summaries",
        )

    async def find_by_name(self, name: str) -> list[Document]:
        """Documents whose display or canonical name equals ``name``."""
        return await self._select(
            f"SELECT record_json FROM {self.name} "
            "WHERE display_name = ? OR canonical_name = ? ORDER BY document_id",
            [name, name],
            operation="find_by_name",
        )


class BookmarkCollection(Collection[Bookmark]):
    spec = collection(BOOKMARKS)
    model = Bookmark

    async def for_document(self, document_id: int) -> list[Bookmark]:
        return await self._select(
            f"SELECT record_json FROM {self.name} WHERE document_id = ? ORDER BY created_at, id",
            [document_id],
            operation="for_document",
        )

    async def recent(self, limit: int = 20) -> list[Bookmark]:
        """Newest bookmarks first."""
        return await self._select(
            f"SELECT record_json FROM {self.name} ORDER BY created_at DESC, id LIMIT ?",
            [limit],
            operation="recent",
        )


def coerce_record(model: type[R], value: R | Mapping[str, Any], collection_name: str) -> R:
    """Validate ``value`` as ``model`` at the store boundary."""
    try:
        if isinstance(value, model):
            return model.model_validate(value.model_dump())
        return model.model_validate(value)
    except ValidationError as exc:
        STORE_OPERATIONS.labels(collection_name, "put", "invalid").inc()
        raise WriteError(
            f"invalid {model.__name__} for {collection_name}: {exc}", collection=collection_name
        ) from exc


def encode_record(record: BaseModel, collection_name: str) -> str:
    try:
        return orjson.dumps(record.model_dump(mode="json")).decode("utf-8")
    except (TypeError, orjson.JSONEncodeError) as exc:
        raise WriteError(f"cannot serialize record for {collection_name}: {exc}", collection=collection_name) from exc


def decode_record(model: type[R], payload: str | bytes, collection_name: str) -> R:
    try:
        return model.model_validate(orjson.loads(payload))
    except (orjson.JSONDecodeError, ValidationError) as exc:
        logger.error("Corrupt record in %s: %s", collection_name, exc)
        raise ReadError(f"corrupt record in {collection_name}: {exc}", collection=collection_name) from exc


__all__ = ["BookmarkCollection", "Collection", "DocumentCollection", "LocalStore"]
