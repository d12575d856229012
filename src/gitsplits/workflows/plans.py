"""Action plan lifecycle: create, format, approve, cancel, expire.

A plan is the only thing standing between a sensitive intent and its
execution in advisor/draft mode (or when approval is always required).
States: none -> pending -> approved | expired | cancelled. Expiry is detected
lazily on the next approval attempt.
"""

from __future__ import annotations

import hashlib
import json
from enum import Enum
from typing import Any, Mapping, Sequence

from gitsplits.clock import iso_from_ms
from gitsplits.conversation.state import ConversationState, Plan
from gitsplits.errors import PlanExpired, PlanMismatch
from gitsplits.observability.logging import get_logger

logger = get_logger(__name__)

PLAN_ID_PREFIX = "plan-"


class PlanStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


# intent -> (dependencies, risk, outputs)
_BLUEPRINTS: dict[str, tuple[list[str], str, list[str]]] = {
    "pay": (
        ["split_exists", "verified_recipients", "payment_policy", "wallet_or_rails_auth"],
        "onchain_value_transfer",
        ["tx_hash_or_intent_ref", "coverage_summary", "pending_claims"],
    ),
    "create": (
        ["repo_analysis", "near_connectivity", "worker_registration"],
        "onchain_state_change",
        ["split_id", "allocation_preview", "verification_coverage"],
    ),
}


def plan_id_for(intent: str, params: Mapping[str, Any], created_at: int) -> str:
    seed = json.dumps(
        {"intent": intent, "params": dict(params), "created_at": created_at},
        sort_keys=True,
        default=str,
    )
    return PLAN_ID_PREFIX + hashlib.sha256(seed.encode("utf-8")).hexdigest()[:10]


def create_action_plan(
    intent: str,
    params: Mapping[str, Any],
    *,
    confidence: float,
    now_ms: int,
    ttl_seconds: float,
    warnings: Sequence[str] = (),
    source_text: str = "",
) -> Plan:
    dependencies, risk, outputs = _BLUEPRINTS.get(intent, ([], "", []))
    risks = [*warnings, risk] if risk else list(warnings)
    return Plan(
        id=plan_id_for(intent, params, now_ms),
        intent=intent,
        params=dict(params),
        dependencies=list(dependencies),
        risks=risks,
        outputs=list(outputs),
        created_at=now_ms,
        expires_at=now_ms + int(ttl_seconds * 1000),
        confidence=confidence,
        source_text=source_text,
    )


def format_plan_for_user(plan: Plan) -> str:
    payload = {
        "id": plan.id,
        "intent": plan.intent,
        "params": plan.params,
        "dependencies": plan.dependencies,
        "risks": plan.risks,
        "outputs": plan.outputs,
        "confidence": round(plan.confidence, 2),
        "expires_at": iso_from_ms(plan.expires_at),
    }
    body = json.dumps(payload, indent=2, ensure_ascii=False, default=str)
    return (
        f"🧭 Execution plan prepared ({plan.intent}).\n\n"
        f"```json\n{body}\n```\n\n"
        f'Reply with "approve {plan.id}" to execute, or "cancel" to discard.'
    )


def approve_pending_plan(state: ConversationState, supplied_id: str | None, *, now_ms: int) -> Plan:
    """Consume the pending plan if `supplied_id` matches and it has not expired.

    Raises:
        PlanMismatch: No pending plan, or the id differs. State is unchanged.
        PlanExpired: The plan outlived its TTL. The pending plan is cleared.
    """
    plan = state.pending_plan
    if plan is None or supplied_id != plan.id:
        raise PlanMismatch(plan.id if plan else None, supplied_id)
    if plan.is_expired(now_ms):
        state.pending_plan = None
        logger.info("plan_expired", plan_id=plan.id, user_id=state.user_id)
        raise PlanExpired(plan.id)
    state.pending_plan = None
    logger.info("plan_approved", plan_id=plan.id, user_id=state.user_id)
    return plan


def cancel_pending_plan(state: ConversationState) -> Plan | None:
    plan, state.pending_plan = state.pending_plan, None
    return plan
