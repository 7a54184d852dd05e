"""Tests for the async local store."""

from __future__ import annotations

from pathlib import Path

import anyio
import pytest

from quran_wbw.core.errors import InitError, ReadError, WriteError
from quran_wbw.db.sqlite import SQLiteDatabase
from quran_wbw.models.records import Bookmark, Document, Preferences
from quran_wbw.store.local_store import LocalStore

pytestmark = pytest.mark.anyio

EXPECTED_TABLES = {"documents", "bookmarks", "preferences"}
EXPECTED_INDEXES = {
    "idx_documents_display_name",
    "idx_documents_canonical_name",
    "idx_bookmarks_document_id",
    "idx_bookmarks_created_at",
}


async def test_concurrent_open_runs_one_schema_pass(store: LocalStore, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[int] = []
    original = store.database.ensure_schema

    def counting_ensure_schema(target_version: int) -> list[str]:
        calls.append(target_version)
        return original(target_version)

    monkeypatch.setattr(store.database, "ensure_schema", counting_ensure_schema)
    handles: list[SQLiteDatabase] = []

    async def opener() -> None:
        handles.append(await store.open())

    async with anyio.create_task_group() as tg:
        for _ in range(8):
            tg.start_soon(opener)

    assert len(handles) == 8
    assert all(handle is store.database for handle in handles)
    assert len(calls) == 1
    assert store.database.object_names("table") == EXPECTED_TABLES
    assert store.database.object_names("index") == EXPECTED_INDEXES


async def test_reopen_existing_database_reuses_collections(store: LocalStore, db_path: Path, fatiha: Document) -> None:
    await store.documents.put(fatiha)
    await store.close()

    reopened = LocalStore(SQLiteDatabase(db_path))
    assert await reopened.documents.get(1) == fatiha
    assert reopened.database.object_names("table") == EXPECTED_TABLES
    await reopened.close()


async def test_put_get_round_trip(store: LocalStore, fatiha: Document) -> None:
    await store.documents.put(fatiha)
    loaded = await store.documents.get(1)
    assert loaded == fatiha
    assert loaded is not fatiha
    assert loaded.units[0].tokens[1].gloss_text == "(of) Allah"


async def test_put_replaces_without_merging(store: LocalStore, fatiha: Document) -> None:
    await store.documents.put(fatiha)
    replacement = Document(
        document_id=1,
        display_name="Test",
        localized_name="Test",
        canonical_name="Test",
        unit_count=7,
    )
    await store.documents.put(replacement)

    loaded = await store.documents.get(1)
    assert loaded == replacement
    assert loaded.units is None
    assert loaded.provenance is None


async def test_missing_key_returns_none(store: LocalStore) -> None:
    assert await store.documents.get(999) is None
    assert await store.bookmarks.get("missing") is None


async def test_delete_is_idempotent(store: LocalStore, fatiha: Document) -> None:
    await store.documents.put(fatiha)
    await store.documents.delete(1)
    assert await store.documents.get(1) is None
    await store.documents.delete(1)
    assert await store.documents.get(1) is None


async def test_preferences_default_when_never_saved(store: LocalStore) -> None:
    preferences = await store.get_preferences()
    assert preferences == Preferences(font_size=16, show_transliteration=False, show_word_meanings=True)
    assert preferences.selected_translation_id is None


async def test_preferences_saved_value_replaces_default(store: LocalStore) -> None:
    saved = Preferences(font_size=20, show_transliteration=True, show_word_meanings=False)
    await store.save_preferences(saved)
    assert await store.get_preferences() == saved

    await store.save_preferences({"font_size": 24, "show_transliteration": False, "show_word_meanings": True})
    assert (await store.get_preferences()).font_size == 24


async def test_collections_have_separate_key_spaces(store: LocalStore, make_bookmark) -> None:
    await store.bookmarks.put(make_bookmark("x"))
    assert await store.documents.get("x") is None
    assert await store.documents.get_all() == []
    assert (await store.bookmarks.get("x")).id == "x"


async def test_scenario_put_get_delete(store: LocalStore) -> None:
    record = {
        "document_id": 1,
        "display_name": "Test",
        "localized_name": "Test",
        "canonical_name": "Test",
        "unit_count": 7,
    }
    await store.documents.put(record)
    assert await store.documents.get(1) == Document(**record)
    await store.documents.delete(1)
    assert await store.documents.get(1) is None


async def test_get_all_bookmarks(store: LocalStore, make_bookmark) -> None:
    first = make_bookmark("b1", document_id=1, unit_number=3)
    second = make_bookmark("b2", document_id=1, unit_number=5)
    await store.bookmarks.put(first)
    await store.bookmarks.put(second)

    stored = await store.bookmarks.get_all()
    assert sorted(stored, key=lambda bookmark: bookmark.id) == [first, second]


async def test_bookmarks_tolerate_dangling_references(store: LocalStore, make_bookmark) -> None:
    bookmark = make_bookmark("orphan", document_id=114, unit_number=6)
    await store.bookmarks.put(bookmark)
    assert await store.bookmarks.get("orphan") == bookmark
    assert await store.documents.get(114) is None


async def test_bookmark_index_queries(store: LocalStore, make_bookmark) -> None:
    await store.bookmarks.put(make_bookmark("a", document_id=1, created_at=100))
    await store.bookmarks.put(make_bookmark("b", document_id=2, created_at=300))
    await store.bookmarks.put(make_bookmark("c", document_id=1, created_at=200))

    assert [b.id for b in await store.bookmarks.for_document(1)] == ["a", "c"]
    assert await store.bookmarks.for_document(3) == []
    assert [b.id for b in await store.bookmarks.recent(limit=2)] == ["b", "c"]


async def test_find_documents_by_name(store: LocalStore, fatiha: Document, yaseen: Document) -> None:
    await store.documents.put(fatiha)
    await store.documents.put(yaseen)

    assert await store.documents.find_by_name("يس") == [yaseen]
    assert await store.documents.find_by_name("Al-Faatiha") == [fatiha]
    assert await store.documents.find_by_name("Al-Baqara") == []


async def test_presence_checks(store: LocalStore, fatiha: Document, yaseen: Document) -> None:
    assert await store.downloaded_ids() == set()
    await store.documents.put(fatiha)
    await store.documents.put(yaseen)

    assert await store.is_downloaded(36)
    assert not await store.is_downloaded(2)
    assert await store.downloaded_ids() == {1, 36}
    assert await store.documents.count() == 2


async def test_invalid_record_is_rejected(store: LocalStore) -> None:
    with pytest.raises(WriteError):
        await store.documents.put({"document_id": 0, "display_name": "x"})
    with pytest.raises(WriteError):
        await store.bookmarks.put(
            {"id": "b", "document_id": 1, "unit_number": 1, "created_at": 0, "colour": "red"}
        )
    assert await store.documents.get_all() == []


async def test_duplicate_unit_numbers_are_rejected(store: LocalStore, fatiha: Document) -> None:
    payload = fatiha.model_dump()
    payload["units"][1]["unit_number"] = 1
    with pytest.raises(WriteError):
        await store.documents.put(payload)


async def test_write_failure_raises_write_error(store: LocalStore, make_bookmark) -> None:
    await store.open()
    store.database.execute("DROP TABLE bookmarks")
    with pytest.raises(WriteError) as excinfo:
        await store.bookmarks.put(make_bookmark("b1"))
    assert excinfo.value.collection == "bookmarks"
    with pytest.raises(WriteError):
        await store.bookmarks.delete("b1")


async def test_read_failure_raises_read_error(store: LocalStore) -> None:
    await store.open()
    store.database.execute("DROP TABLE documents")
    with pytest.raises(ReadError):
        await store.documents.get(1)
    with pytest.raises(ReadError):
        await store.documents.get_all()


async def test_corrupt_record_raises_read_error(store: LocalStore) -> None:
    await store.open()
    with store.database.transaction() as cursor:
        cursor.execute(
            "INSERT INTO documents (document_id, display_name, canonical_name, record_json) VALUES (?, ?, ?, ?)",
            [5, "x", "x", "{not json"],
        )
    with pytest.raises(ReadError):
        await store.documents.get(5)


async def test_open_fails_when_path_is_directory(tmp_path: Path) -> None:
    directory = tmp_path / "not-a-file"
    directory.mkdir()
    store = LocalStore(SQLiteDatabase(directory))
    with pytest.raises(InitError):
        await store.open()
    assert not store.is_open


async def test_open_fails_for_non_database_file(tmp_path: Path) -> None:
    path = tmp_path / "garbage.db"
    path.write_bytes(b"this is definitely not an sqlite database file" * 20)
    store = LocalStore(SQLiteDatabase(path))
    with pytest.raises(InitError):
        await store.documents.get(1)


async def test_in_memory_store(memory_store: LocalStore, yaseen: Document) -> None:
    await memory_store.documents.put(yaseen)
    assert await memory_store.documents.get(36) == yaseen
    assert await memory_store.get_preferences() == Preferences.defaults()


async def test_sequential_writes_observe_program_order(store: LocalStore) -> None:
    for note in ("first", "second", "third"):
        await store.bookmarks.put(
            Bookmark(id="same", document_id=2, unit_number=255, note=note, created_at=1)
        )
        assert (await store.bookmarks.get("same")).note == note


async def test_keys_of_the_wrong_type_are_absent(store: LocalStore, fatiha: Document, make_bookmark) -> None:
    await store.documents.put(fatiha)
    await store.bookmarks.put(make_bookmark("1"))

    assert await store.documents.get("1") is None
    assert await store.documents.get(True) is None
    assert await store.bookmarks.get(1) is None
    assert not await store.documents.contains("1")
    assert not await store.bookmarks.contains(1)

    await store.documents.delete("1")
    await store.bookmarks.delete(1)
    assert await store.documents.get(1) == fatiha
    assert (await store.bookmarks.get("1")).id == "1"


async def test_keys_outside_integer_range_are_absent(store: LocalStore) -> None:
    assert await store.documents.get(2**64) is None
    assert await store.documents.get(-(2**63) - 1) is None
    assert not await store.documents.contains(2**64)
    await store.documents.delete(2**64)


async def test_put_with_out_of_range_id_raises_write_error(store: LocalStore) -> None:
    huge = Document(
        document_id=2**64,
        display_name="x",
        localized_name="x",
        canonical_name="x",
        unit_count=0,
    )
    with pytest.raises(WriteError):
        await store.documents.put(huge)
    assert await store.documents.count() == 0


async def test_summaries_omit_units(store: LocalStore, fatiha: Document, yaseen: Document) -> None:
    await store.documents.put(yaseen)
    await store.documents.put(fatiha)
    summaries = await store.documents.summaries()
    assert summaries == [fatiha.summary(), yaseen.summary()]
    assert not any(summary.is_complete for summary in summaries)


def _numbered_document(document_id: int) -> Document:
    return Document(
        document_id=document_id,
        display_name=f"Chapter {document_id}",
        localized_name=f"Chapter {document_id}",
        canonical_name=f"chapter-{document_id}",
        unit_count=document_id,
    )


async def test_concurrent_puts_and_gets_across_collections(store: LocalStore, make_bookmark) -> None:
    observed: list[tuple[int, Document | None]] = []

    async def write_document(document_id: int) -> None:
        await store.documents.put(_numbered_document(document_id))

    async def write_bookmark(number: int) -> None:
        await store.bookmarks.put(make_bookmark(f"bm-{number}", document_id=number, unit_number=number))

    async def read_document(document_id: int) -> None:
        observed.append((document_id, await store.documents.get(document_id)))

    async with anyio.create_task_group() as tg:
        for number in range(1, 41):
            tg.start_soon(write_document, number)
            tg.start_soon(write_bookmark, number)
            tg.start_soon(read_document, number)

    assert await store.documents.count() == 40
    assert await store.bookmarks.count() == 40
    for number in range(1, 41):
        assert await store.documents.get(number) == _numbered_document(number)
        bookmark = await store.bookmarks.get(f"bm-{number}")
        assert (bookmark.document_id, bookmark.unit_number) == (number, number)
    for document_id, seen in observed:
        assert seen is None or seen == _numbered_document(document_id)


async def test_concurrent_puts_to_one_key_keep_a_whole_record(store: LocalStore) -> None:
    versions = [
        Bookmark(id="same", document_id=number, unit_number=number, note=f"note {number}", created_at=number)
        for number in range(1, 51)
    ]

    async with anyio.create_task_group() as tg:
        for version in versions:
            tg.start_soon(store.bookmarks.put, version)

    final = await store.bookmarks.get("same")
    assert final in versions
    assert final.document_id == final.unit_number == final.created_at
    assert final.note == f"note {final.document_id}"
    assert await store.bookmarks.count() == 1


async def test_document_writes_do_not_read_back(
    store: LocalStore, fatiha: Document, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def failing_count() -> int:
        raise ReadError("count unavailable", collection="documents")

    monkeypatch.setattr(store.documents, "count", failing_count)
    await store.documents.put(fatiha)
    assert await store.documents.contains(1)
    await store.documents.delete(1)
    assert not await store.documents.contains(1)
