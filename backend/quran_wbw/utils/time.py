"""Time helpers."""

from __future__ import annotations

import time


def now_ms() -> int:
    """Return current timestamp in milliseconds since the epoch."""
    return int(time.time() * 1000)
