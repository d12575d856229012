"""Approval workflows for sensitive intents."""

from gitsplits.workflows.plans import (
    PlanStatus,
    approve_pending_plan,
    cancel_pending_plan,
    create_action_plan,
    format_plan_for_user,
    plan_id_for,
)

__all__ = [
    "PlanStatus",
    "approve_pending_plan",
    "cancel_pending_plan",
    "create_action_plan",
    "format_plan_for_user",
    "plan_id_for",
]
