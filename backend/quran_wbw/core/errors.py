"""Typed failures raised by the local store.

A missing key is never one of these: reads return ``None`` and deletes of
absent keys succeed.
"""

from __future__ import annotations


class StoreError(Exception):
    """Base class for storage-engine failures surfaced to callers."""

    kind = "store_error"

    def __init__(self, message: str, *, collection: str | None = None) -> None:
        super().__init__(message)
        self.collection = collection


class InitError(StoreError):
    """The on-device database could not be opened or upgraded."""

    kind = "init_error"


class ReadError(StoreError):
    """A read transaction failed inside the storage engine."""

    kind = "read_error"


class WriteError(StoreError):
    """A write transaction failed, or the record could not be serialized."""

    kind = "write_error"


__all__ = ["StoreError", "InitError", "ReadError", "WriteError"]
