"""Test fixtures for the offline reader backend."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from quran_wbw.db.sqlite import SQLiteDatabase  # noqa: E402
from quran_wbw.models.records import Bookmark, Category, Document, Provenance, Token, Unit  # noqa: E402
from quran_wbw.store.local_store import LocalStore  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("QWBW_DB_PATH", str(tmp_path / "offline.db"))
    monkeypatch.delenv("QWBW_CONFIG", raising=False)
    monkeypatch.delenv("QWBW_HOST", raising=False)

    from quran_wbw.api import dependencies as deps
    from quran_wbw.core.config import get_settings

    get_settings.cache_clear()
    deps.get_app_settings.cache_clear()
    deps._STORE = None
    deps._REMOTE = None
    deps._READER = None
    yield
    get_settings.cache_clear()
    deps.get_app_settings.cache_clear()
    deps._STORE = None
    deps._REMOTE = None
    deps._READER = None


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "store" / "offline.db"


@pytest.fixture
def store(db_path: Path) -> LocalStore:
    return LocalStore(SQLiteDatabase(db_path))


@pytest.fixture
def memory_store() -> LocalStore:
    return LocalStore(SQLiteDatabase(":memory:"))


@pytest.fixture
def fatiha() -> Document:
    return Document(
        document_id=1,
        display_name="الفاتحة",
        localized_name="ফাতিহা",
        canonical_name="Al-Faatiha",
        unit_count=7,
        category=Category.makki,
        units=[
            Unit(
                unit_number=1,
                source_text="بِسْمِ ٱللَّهِ ٱلرَّحْمَـٰنِ ٱلرَّحِيمِ",
                tokens=[
                    Token(position=1, source_text="بِسْمِ", romanization="bis'mi", gloss_text="In (the) name"),
                    Token(position=2, source_text="ٱللَّهِ", romanization="l-lahi", gloss_text="(of) Allah"),
                ],
                translated_text="In the name of Allah, the Entirely Merciful, the Especially Merciful.",
                annotation_short="Opening invocation.",
                media_url="https://cdn.islamic.network/quran/audio/128/ar.alafasy/1.mp3",
            ),
            Unit(
                unit_number=2,
                source_text="ٱلْحَمْدُ لِلَّهِ رَبِّ ٱلْعَـٰلَمِينَ",
                tokens=[Token(position=1, source_text="ٱلْحَمْدُ", gloss_text="All praises", grammar_tag="word")],
                translated_text="All praise is due to Allah, Lord of the worlds.",
            ),
        ],
        provenance=Provenance(
            source_text="Al-Quran Cloud (Uthmani Script)",
            source_translation="Saheeh International",
            license="Creative Commons - Public Domain",
        ),
    )


@pytest.fixture
def yaseen() -> Document:
    return Document(
        document_id=36,
        display_name="يس",
        localized_name="Ya Sin",
        canonical_name="Yaseen",
        unit_count=83,
        category=Category.makki,
    )


@pytest.fixture
def make_bookmark():
    def _make(bookmark_id: str, document_id: int = 1, unit_number: int = 1, created_at: int = 1_700_000_000_000) -> Bookmark:
        return Bookmark(
            id=bookmark_id,
            document_id=document_id,
            unit_number=unit_number,
            created_at=created_at,
        )

    return _make
