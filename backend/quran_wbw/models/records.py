"""Records persisted by the local store.

Each model carries the complete field set of its collection. Unknown fields
are rejected so loosely shaped payloads never reach the database.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator

_RECORD_CONFIG = {
    "extra": "forbid",
    "validate_assignment": True,
}


class Category(str, Enum):
    """Revelation period of a chapter."""

    makki = "makki"
    madani = "madani"


class Token(BaseModel):
    """A single word inside a verse, with its gloss."""

    position: int = Field(ge=1)
    source_text: str
    romanization: str | None = None
    gloss_text: str
    grammar_tag: str | None = None

    model_config = _RECORD_CONFIG


class Unit(BaseModel):
    """One verse row of a document."""

    unit_number: int = Field(ge=1)
    source_text: str
    tokens: list[Token] = Field(default_factory=list)
    translated_text: str
    annotation_short: str | None = None
    annotation_full: str | None = None
    media_url: str | None = None

    model_config = _RECORD_CONFIG

    @model_validator(mode="after")
    def _unique_positions(self) -> "Unit":
        positions = [token.position for token in self.tokens]
        if len(positions) != len(set(positions)):
            raise ValueError(f"duplicate token position in unit {self.unit_number}")
        return self


class Provenance(BaseModel):
    source_text: str
    source_translation: str
    source_annotation: str | None = None
    license: str

    model_config = _RECORD_CONFIG


class Document(BaseModel):
    """A chapter, either a list summary or fully fetched with its units."""

    document_id: int = Field(ge=1)
    display_name: str
    localized_name: str
    canonical_name: str
    unit_count: int = Field(ge=0)
    category: Category | None = None
    units: list[Unit] | None = None
    provenance: Provenance | None = None

    model_config = _RECORD_CONFIG

    @model_validator(mode="after")
    def _unique_unit_numbers(self) -> "Document":
        if self.units:
            numbers = [unit.unit_number for unit in self.units]
            if len(numbers) != len(set(numbers)):
                raise ValueError(f"duplicate unit number in document {self.document_id}")
        return self

    @property
    def is_complete(self) -> bool:
        return self.units is not None

    def summary(self) -> "Document":
        """Copy without units or provenance, as listed by the chapter index."""
        return self.model_copy(update={"units": None, "provenance": None})


class Bookmark(BaseModel):
    # document_id/unit_number are weak references; nothing checks they exist.
    id: str = Field(min_length=1)
    document_id: int = Field(ge=1)
    unit_number: int = Field(ge=1)
    note: str | None = None
    created_at: int = Field(ge=0)

    model_config = _RECORD_CONFIG


class Preferences(BaseModel):
    """Reader preferences, stored as a single row.

    ``font_size`` is bounded to 12-32 by the UI; the store accepts any int.
    """

    font_size: int = 16
    show_transliteration: bool = False
    show_word_meanings: bool = True
    selected_translation_id: str | None = None
    selected_annotation_source_id: str | None = None

    model_config = _RECORD_CONFIG

    @classmethod
    def defaults(cls) -> "Preferences":
        return cls(font_size=16, show_transliteration=False, show_word_meanings=True)


__all__ = [
    "Bookmark",
    "Category",
    "Document",
    "Preferences",
    "Provenance",
    "Token",
    "Unit",
]
