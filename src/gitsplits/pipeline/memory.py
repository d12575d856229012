"""Cross-turn memory: per-repository facts and guided follow-up hints."""

from __future__ import annotations

import hashlib
import json
from typing import Any, Sequence

from gitsplits.conversation.state import (
    AnalysisSnapshot,
    ConversationState,
    PaymentSnapshot,
    SplitSnapshot,
)
from gitsplits.repos import repo_key, repo_path


def analysis_hash(contributors: Sequence[Any]) -> str:
    payload = json.dumps(list(contributors), sort_keys=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


def remember_updates(state: ConversationState, updates: dict[str, Any], now_ms: int) -> None:
    """Fold snapshots produced by an intent into the repository memory."""
    analysis = updates.get("last_analysis")
    if isinstance(analysis, AnalysisSnapshot):
        state.remember_repo(
            analysis.repo_url, now_ms, last_analysis_hash=analysis_hash(analysis.contributors)
        )
    split = updates.get("last_split")
    if isinstance(split, SplitSnapshot):
        state.remember_repo(split.repo_url, now_ms, last_split_id=split.id)
    payment = updates.get("last_payment")
    if isinstance(payment, PaymentSnapshot):
        state.remember_repo(
            payment.repo_url,
            now_ms,
            last_split_id=payment.split_id,
            last_payment_at=payment.timestamp,
            last_payment_tx=payment.tx_hash,
        )


def follow_up_hint(intent_name: str, state: ConversationState) -> str | None:
    if intent_name == "analyze" and state.last_analysis is not None:
        repo_url = state.last_analysis.repo_url
        memory = state.repo_memory.get(repo_key(repo_url))
        if memory is None or memory.last_split_id is None:
            return f'💡 Next: "create {repo_path(repo_url)}" to set up a split.'
        return f'💡 Next: "pay 100 USDC to {repo_path(repo_url)}" to pay the existing split.'
    if intent_name == "create" and state.last_split is not None:
        return f'💡 Next: "pay 100 USDC to {repo_path(state.last_split.repo_url)}"'
    if intent_name == "pay" and state.last_payment is not None:
        return f'💡 Next: "pending claims for {repo_path(state.last_payment.repo_url)}"'
    return None
