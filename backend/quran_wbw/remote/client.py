"""Best-effort client for the upstream Quran text APIs.

Neither fetch raises for upstream trouble: the chapter list falls back to a
small built-in list and a chapter detail comes back as ``None``.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence

import requests

from quran_wbw.core.config import Settings
from quran_wbw.core.logging import get_logger
from quran_wbw.core.metrics import REMOTE_FETCHES
from quran_wbw.models.records import Category, Document, Provenance, Token, Unit

logger = get_logger(__name__)

ATTRIBUTION = {
    "arabic": "Arabic text: Al-Quran Cloud API (Uthmani Script)",
    "translation": "Translation: Al-Quran Cloud API edition",
    "word_by_word": "Word meanings: Quran.com API (when available)",
}

PROVENANCE = Provenance(
    source_text="Al-Quran Cloud (Uthmani Script)",
    source_translation="Al-Quran Cloud translation edition",
    source_annotation=None,
    license="Creative Commons - Public Domain",
)

FALLBACK_DOCUMENTS: tuple[Document, ...] = (
    Document(
        document_id=1,
        display_name="الفاتحة",
        localized_name="ফাতিহা",
        canonical_name="Al-Faatiha",
        unit_count=7,
        category=Category.makki,
    ),
    Document(
        document_id=2,
        display_name="البقرة",
        localized_name="বাকারা",
        canonical_name="Al-Baqara",
        unit_count=286,
        category=Category.madani,
    ),
    Document(
        document_id=36,
        display_name="يس",
        localized_name="ইয়াসিন",
        canonical_name="Yaseen",
        unit_count=83,
        category=Category.makki,
    ),
)


class RemoteSource(Protocol):
    """What the reader needs from an upstream text source."""

    def fetch_document_list(self) -> list[Document]: ...

    def fetch_document_detail(self, document_id: int) -> Document | None: ...


class UpstreamError(RuntimeError):
    """Upstream answered with something other than a usable payload."""


class QuranApiClient:
    """Fetches chapter lists and chapter details over HTTP."""

    def __init__(self, settings: Settings, session: requests.Session | None = None) -> None:
        self.settings = settings
        self.session = session or requests.Session()

    def fetch_document_list(self) -> list[Document]:
        try:
            payload = self._get_json(f"{self.settings.api_base}/surah")
            documents = [_summary_from_payload(item) for item in _expect_ok(payload)]
        except (requests.RequestException, UpstreamError, ValueError, KeyError, TypeError) as exc:
            REMOTE_FETCHES.labels("list", "fallback").inc()
            logger.warning("Falling back to built-in chapter list: %s", exc)
            return [document.model_copy() for document in FALLBACK_DOCUMENTS]
        REMOTE_FETCHES.labels("list", "ok").inc()
        return documents

    def fetch_document_detail(self, document_id: int) -> Document | None:
        try:
            arabic = _expect_ok(self._get_json(f"{self.settings.api_base}/surah/{document_id}"))
            translation = _expect_ok(
                self._get_json(
                    f"{self.settings.api_base}/surah/{document_id}/{self.settings.translation_edition}"
                )
            )
            words = self._fetch_words(document_id)
            document = self._build_document(arabic, translation, words)
        except (requests.RequestException, UpstreamError, ValueError, KeyError, TypeError) as exc:
            REMOTE_FETCHES.labels("detail", "unavailable").inc()
            logger.warning("Chapter %s unavailable upstream: %s", document_id, exc)
            return None
        REMOTE_FETCHES.labels("detail", "ok").inc()
        return document

    def _fetch_words(self, document_id: int) -> dict[int, list[Token]]:
        """Word-level data keyed by verse number; empty when unavailable."""
        try:
            payload = self._get_json(
                f"{self.settings.word_api_base}/verses/by_chapter/{document_id}",
                params={
                    "language": self.settings.word_language,
                    "words": "true",
                    "per_page": 300,
                    "fields": "text_uthmani",
                },
            )
            verses = payload.get("verses") or []
            return {int(verse["verse_number"]): _tokens_from_words(verse.get("words") or []) for verse in verses}
        except (requests.RequestException, ValueError, KeyError, TypeError, AttributeError) as exc:
            REMOTE_FETCHES.labels("words", "unavailable").inc()
            logger.warning("Word data for chapter %s unavailable: %s", document_id, exc)
            return {}

    def _build_document(
        self,
        arabic: dict[str, Any],
        translation: dict[str, Any],
        words: dict[int, list[Token]],
    ) -> Document:
        translated = {int(ayah["numberInSurah"]): ayah.get("text", "") for ayah in translation.get("ayahs", [])}
        units = [
            Unit(
                unit_number=int(ayah["numberInSurah"]),
                source_text=ayah["text"],
                tokens=words.get(int(ayah["numberInSurah"]), []),
                translated_text=translated.get(int(ayah["numberInSurah"]), ""),
                media_url=f"{self.settings.audio_base}/{int(ayah['number'])}.mp3",
            )
            for ayah in arabic["ayahs"]
        ]
        summary = _summary_from_payload(arabic)
        return summary.model_copy(update={"units": units, "provenance": PROVENANCE.model_copy()})

    def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        logger.debug("GET %s params=%s", url, params)
        response = self.session.get(url, params=params, timeout=self.settings.request_timeout)
        response.raise_for_status()
        return response.json()


def _expect_ok(payload: Any) -> Any:
    if not isinstance(payload, dict) or payload.get("code") != 200:
        status = payload.get("status") if isinstance(payload, dict) else None
        raise UpstreamError(f"unexpected upstream response: {status}")
    return payload["data"]


def _summary_from_payload(item: dict[str, Any]) -> Document:
    revelation = item.get("revelationType")
    return Document(
        document_id=int(item["number"]),
        display_name=item["name"],
        localized_name=item.get("englishNameTranslation") or item["englishName"],
        canonical_name=item["englishName"],
        unit_count=int(item["numberOfAyahs"]),
        category=_category(revelation),
    )


def _category(revelation: str | None) -> Category | None:
    if revelation == "Meccan":
        return Category.makki
    if revelation == "Medinan":
        return Category.madani
    return None


def _tokens_from_words(words: Sequence[dict[str, Any]]) -> list[Token]:
    # Pause marks and verse-end glyphs are not words.
    real_words = [word for word in words if word.get("char_type_name") == "word"]
    return [
        Token(
            position=idx,
            source_text=word.get("text_uthmani") or word.get("text_imlaei") or word.get("text") or "",
            romanization=(word.get("transliteration") or {}).get("text") or None,
            gloss_text=(word.get("translation") or {}).get("text") or "",
            grammar_tag=word.get("char_type_name"),
        )
        for idx, word in enumerate(real_words, start=1)
    ]


__all__ = [
    "ATTRIBUTION",
    "FALLBACK_DOCUMENTS",
    "QuranApiClient",
    "RemoteSource",
    "UpstreamError",
]
