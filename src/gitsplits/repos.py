"""Repository references and contributor share arithmetic."""

from __future__ import annotations

import math
import re
from fractions import Fraction
from typing import Sequence

from gitsplits.errors import ValidationError

_GITHUB_PREFIX_RE = re.compile(r"^(?:https?://)?(?:www\.)?github\.com/", re.IGNORECASE)
_NEAR_ACCOUNT_RE = re.compile(r"\.(?:near|testnet)$", re.IGNORECASE)


def normalize_repo_url(value: str) -> str:
    """Return the canonical `github.com/<owner>/<repo>` form of a repository reference."""
    cleaned = _GITHUB_PREFIX_RE.sub("", value.strip()).strip().rstrip("/")
    if cleaned.lower().endswith(".git"):
        cleaned = cleaned[:-4]
    return f"github.com/{cleaned}"


def repo_path(repo_url: str) -> str:
    """Return `owner/repo` for a normalized repository URL."""
    return normalize_repo_url(repo_url)[len("github.com/") :]


def split_owner_repo(repo_url: str) -> tuple[str, str]:
    parts = repo_path(repo_url).split("/")
    if len(parts) != 2 or not all(parts):
        raise ValidationError(f"Repository must look like owner/repo, got '{repo_url}'")
    return parts[0], parts[1]


def repo_key(repo_url: str) -> str:
    return normalize_repo_url(repo_url).lower()


def looks_like_repo(value: str) -> bool:
    return "/" in value or "github.com" in value.lower()


def is_system_contributor(username: str) -> bool:
    """Bots and automation accounts never receive payouts."""
    normalized = (username or "").lower()
    return "[bot]" in normalized or normalized.endswith("-bot")


def is_likely_near_account(value: str | None) -> bool:
    return bool(value) and bool(_NEAR_ACCOUNT_RE.search(value or ""))


def normalize_percentages(commits: Sequence[int | float]) -> list[int]:
    """Integer percentage shares summing to exactly 100 (largest remainder).

    Every exact share is floored; the units still missing go to the largest
    fractional remainders, ties broken by larger commit count and then input
    order. An all-zero input splits equally. Shares are never negative.
    """
    if not commits:
        return []
    weights = [Fraction(max(value, 0)) for value in commits]
    total = sum(weights)
    if total == 0:
        weights = [Fraction(1)] * len(weights)
        total = Fraction(len(weights))

    exact = [weight * 100 / total for weight in weights]
    shares = [math.floor(value) for value in exact]
    missing = 100 - sum(shares)
    order = sorted(
        range(len(exact)),
        key=lambda i: (-(exact[i] - shares[i]), -weights[i], i),
    )
    for index in order[:missing]:
        shares[index] += 1
    return shares


def rebalance_to_hundred(percentages: Sequence[float]) -> list[float]:
    """Scale a subset of shares so they sum to 100, keeping their proportions."""
    total = sum(percentages)
    if total <= 0:
        return [0.0 for _ in percentages]
    return [value / total * 100 for value in percentages]
