"""Helpers shared by the intent handlers."""

from __future__ import annotations

import asyncio
import re
from typing import Any, Sequence
from urllib.parse import urlencode

from gitsplits.backends.protocols import Ledger
from gitsplits.errors import ValidationError

USERNAME_PATTERN = r"[a-zA-Z0-9_.\-\[\]]+"

_TRAILING_PUNCTUATION = "?!.,;:"


def compile_patterns(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(pattern, re.IGNORECASE) for pattern in patterns)


def clean_target(value: str | None) -> str:
    return (value or "").strip().rstrip(_TRAILING_PUNCTUATION).strip()


def require(params: dict[str, Any], key: str, message: str) -> None:
    if not params.get(key):
        raise ValidationError(message)


async def lookup_wallets(ledger: Ledger, usernames: Sequence[str]) -> list[str | None]:
    """Resolve verified wallets for all usernames concurrently."""
    return list(await asyncio.gather(*(ledger.get_verified_wallet(u) for u in usernames)))


def mention_preview(usernames: Sequence[str], limit: int = 5) -> str:
    shown = ", ".join(f"@{u}" for u in usernames[:limit])
    if len(usernames) > limit:
        shown += f", +{len(usernames) - limit} more"
    return shown


def verify_link(base_url: str, **query: str) -> str:
    if not query:
        return base_url
    return f"{base_url}?{urlencode(query)}"
