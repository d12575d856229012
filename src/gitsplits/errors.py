"""Domain exceptions for the command pipeline.

Every user-reachable failure maps onto one of these kinds. Intent handlers and
the pipeline controller translate them into plain-text replies; the HTTP layer
maps them onto JSON error payloads.
"""

from __future__ import annotations

from typing import Any, Sequence


class GitSplitsError(Exception):
    """Base class for domain errors."""

    error: str = "gitsplits_error"

    def __init__(self, message: str, *, error: str | None = None):
        super().__init__(message)
        self.message = message
        if error:
            self.error = error


class ValidationError(GitSplitsError):
    """Malformed or missing parameters. Reported inline, never retried."""

    error = "validation_error"


class ConfigurationError(GitSplitsError):
    error = "configuration_error"


class PolicyDenied(GitSplitsError):
    error = "policy_denied"

    def __init__(self, intent_name: str, reasons: Sequence[str]):
        self.intent_name = intent_name
        self.reasons = list(reasons)
        super().__init__(f"Policy blocked {intent_name}: {' | '.join(self.reasons)}")


class SafetyBlocked(GitSplitsError):
    error = "safety_blocked"

    def __init__(self, alerts: Sequence[Any]):
        self.alerts = list(alerts)
        codes = ", ".join(getattr(alert, "code", str(alert)) for alert in self.alerts)
        super().__init__(f"Safety review required ({codes})")


class CollaboratorUnavailable(GitSplitsError):
    """A repository, ledger, inference or reputation lookup failed."""

    error = "collaborator_unavailable"

    def __init__(self, collaborator: str, message: str, *, status_code: int | None = None):
        self.collaborator = collaborator
        self.status_code = status_code
        super().__init__(message)


class PaymentEngineFailure(GitSplitsError):
    error = "payment_engine_failure"

    def __init__(self, engine: str, message: str, *, status_code: int | None = None):
        self.engine = engine
        self.status_code = status_code
        super().__init__(message)


class PlanMismatch(GitSplitsError):
    error = "plan_mismatch"

    def __init__(self, expected: str | None, supplied: str | None):
        self.expected = expected
        self.supplied = supplied
        if expected is None:
            message = "No pending plan to approve."
        else:
            message = f"Pending plan mismatch. Expected {expected}."
        super().__init__(message)


class PlanExpired(GitSplitsError):
    error = "plan_expired"

    def __init__(self, plan_id: str):
        self.plan_id = plan_id
        super().__init__(f"Plan {plan_id} expired. Request a fresh plan.")
