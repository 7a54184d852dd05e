"""ID helpers."""

from __future__ import annotations

import uuid

BOOKMARK_PREFIX = "bm"


def new_id(prefix: str | None = None) -> str:
    """Generate a random UUID4 hex string with optional prefix."""
    base = uuid.uuid4().hex
    return f"{prefix}_{base}" if prefix else base


def new_bookmark_id() -> str:
    """Identifier for a bookmark created by this process."""
    return new_id(BOOKMARK_PREFIX)
