"""Millisecond wall clock shared by plans, replay and conversation memory."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], int]


def epoch_ms() -> int:
    return int(time.time() * 1000)


def iso_from_ms(value: int) -> str:
    """Render epoch milliseconds as ISO-8601 UTC with millisecond precision."""
    dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")
