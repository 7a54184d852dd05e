"""Collection layout of the offline database.

Every table and index records the schema version that introduced it. An
upgrade creates whatever is missing for the target version and leaves
existing tables and rows alone; record shapes are never migrated.
"""

from __future__ import annotations

from dataclasses import dataclass, field

SCHEMA_VERSION = 2

DOCUMENTS = "documents"
BOOKMARKS = "bookmarks"
PREFERENCES = "preferences"

PREFERENCES_KEY = "app"


@dataclass(frozen=True, slots=True)
class IndexSpec:
    name: str
    column: str
    since: int = 1


@dataclass(frozen=True, slots=True)
class CollectionSpec:
    """A keyed collection: one table holding JSON records plus lookup columns."""

    name: str
    key_column: str
    key_type: str
    columns: tuple[tuple[str, str], ...] = ()
    indexes: tuple[IndexSpec, ...] = field(default_factory=tuple)
    since: int = 1

    def create_table_sql(self) -> str:
        column_defs = [f"{self.key_column} {self.key_type} PRIMARY KEY"]
        column_defs.extend(f"{name} {sql_type}" for name, sql_type in self.columns)
        column_defs.append("record_json TEXT NOT NULL")
        joined = ",\n    ".join(column_defs)
        return f"CREATE TABLE IF NOT EXISTS {self.name} (\n    {joined}\n)"

    def create_index_sql(self, index: IndexSpec) -> str:
        return f"CREATE INDEX IF NOT EXISTS {index.name} ON {self.name}({index.column})"


COLLECTIONS: tuple[CollectionSpec, ...] = (
    CollectionSpec(
        name=DOCUMENTS,
        key_column="document_id",
        key_type="INTEGER",
        columns=(
            ("display_name", "TEXT NOT NULL"),
            ("canonical_name", "TEXT"),
        ),
        indexes=(
            IndexSpec("idx_documents_display_name", "display_name"),
            IndexSpec("idx_documents_canonical_name", "canonical_name", since=2),
        ),
    ),
    CollectionSpec(
        name=BOOKMARKS,
        key_column="id",
        key_type="TEXT",
        columns=(
            ("document_id", "INTEGER NOT NULL"),
            ("created_at", "INTEGER NOT NULL DEFAULT 0"),
        ),
        indexes=(
            IndexSpec("idx_bookmarks_document_id", "document_id"),
            IndexSpec("idx_bookmarks_created_at", "created_at", since=2),
        ),
    ),
    CollectionSpec(
        name=PREFERENCES,
        key_column="key",
        key_type="TEXT",
    ),
)


def upgrade_statements(current: int, target: int) -> list[str]:
    """DDL that brings a database at ``current`` up to ``target``.

    Every table and index known at ``target`` is emitted with an ``IF NOT
    EXISTS`` guard, so objects missing from an older file are created and
    existing ones are left untouched. Nothing is emitted when the file is
    already at ``target``.
    """
    if current >= target:
        return []
    statements: list[str] = []
    for spec in COLLECTIONS:
        if spec.since > target:
            continue
        statements.append(spec.create_table_sql())
        for index in spec.indexes:
            if index.since <= target:
                statements.append(spec.create_index_sql(index))
    return statements


def collection(name: str) -> CollectionSpec:
    for spec in COLLECTIONS:
        if spec.name == name:
            return spec
    raise KeyError(name)


__all__ = [
    "BOOKMARKS",
    "COLLECTIONS",
    "DOCUMENTS",
    "PREFERENCES",
    "PREFERENCES_KEY",
    "SCHEMA_VERSION",
    "CollectionSpec",
    "IndexSpec",
    "collection",
    "upgrade_statements",
]
