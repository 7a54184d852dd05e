"""SQLite management utilities."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Sequence

from quran_wbw.core.config import MEMORY_DB
from quran_wbw.core.errors import InitError
from quran_wbw.core.logging import get_logger
from quran_wbw.db.schema import SCHEMA_VERSION, upgrade_statements

logger = get_logger(__name__)

DEFAULT_PRAGMAS = (
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=FULL;",
    "PRAGMA foreign_keys=ON;",
    "PRAGMA temp_store=MEMORY;",
)


class SQLiteDatabase:
    """Thin wrapper around sqlite3 providing pragmatic defaults.

    The connection is created with ``check_same_thread=False`` because the
    async store runs each call on a worker thread; callers must serialize
    access themselves.
    """

    def __init__(self, db_path: Path | str, busy_timeout: float = 5.0) -> None:
        self.db_path = Path(db_path) if str(db_path) == MEMORY_DB else Path(db_path).expanduser()
        self.busy_timeout = busy_timeout
        self._connection: sqlite3.Connection | None = None

    @property
    def in_memory(self) -> bool:
        return str(self.db_path) == MEMORY_DB

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    def connect(self) -> sqlite3.Connection:
        if self._connection is None:
            try:
                if not self.in_memory:
                    self.db_path.parent.mkdir(parents=True, exist_ok=True)
                connection = sqlite3.connect(
                    str(self.db_path),
                    timeout=self.busy_timeout,
                    check_same_thread=False,
                )
                connection.row_factory = sqlite3.Row
                for pragma in DEFAULT_PRAGMAS:
                    connection.execute(pragma)
            except (OSError, sqlite3.Error) as exc:
                logger.error("Cannot open database %s: %s", self.db_path, exc)
                raise InitError(f"cannot open database {self.db_path}: {exc}") from exc
            self._connection = connection
        return self._connection

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> sqlite3.Cursor:
        conn = self.connect()
        return conn.execute(sql, params or [])

    def query(self, sql: str, params: Sequence[Any] | None = None) -> list[sqlite3.Row]:
        cursor = self.execute(sql, params)
        return cursor.fetchall()

    def query_one(self, sql: str, params: Sequence[Any] | None = None) -> sqlite3.Row | None:
        return self.execute(sql, params).fetchone()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        conn = self.connect()
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()

    def schema_version(self) -> int:
        row = self.query_one("PRAGMA user_version")
        return int(row[0]) if row else 0

    def object_names(self, kind: str) -> set[str]:
        """Names of tables or indexes currently present in the file."""
        rows = self.query(
            "SELECT name FROM sqlite_master WHERE type = ? AND name NOT LIKE 'sqlite_%'",
            [kind],
        )
        return {row["name"] for row in rows}

    def ensure_schema(self, target_version: int = SCHEMA_VERSION) -> list[str]:
        """Create missing collections and indexes up to ``target_version``.

        Returns the DDL that was applied, empty when the file was current.
        Raises ``InitError`` for files written by a newer schema or when the
        engine rejects the upgrade.
        """
        try:
            current = self.schema_version()
            if current > target_version:
                raise InitError(
                    f"database {self.db_path} is at schema version {current}, "
                    f"newer than supported version {target_version}"
                )
            statements = upgrade_statements(current, target_version)
            if not statements:
                return []
            with self.transaction() as cursor:
                # DDL does not open a transaction implicitly.
                cursor.execute("BEGIN")
                for statement in statements:
                    cursor.execute(statement)
                # PRAGMA takes no bound parameters; target_version is an int.
                cursor.execute(f"PRAGMA user_version = {int(target_version)}")
        except sqlite3.Error as exc:
            logger.error("Schema upgrade of %s failed: %s", self.db_path, exc)
            raise InitError(f"cannot upgrade database {self.db_path}: {exc}") from exc
        logger.info(
            "Upgraded %s from schema version %s to %s",
            self.db_path,
            current,
            target_version,
            extra={"ctx_statements": len(statements)},
        )
        return statements


__all__ = ["SQLiteDatabase"]
