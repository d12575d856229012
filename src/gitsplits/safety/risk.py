"""Distribution risk inspection.

High-severity alerts block a payout unless the user explicitly overrides;
medium and low alerts are surfaced but never block.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Sequence

from gitsplits.repos import is_system_contributor

AlertLevel = Literal["low", "medium", "high"]

OVERRIDE_PHRASES = ("override safety", "force pay")


@dataclass(frozen=True)
class SafetyAlert:
    level: AlertLevel
    code: str
    message: str


@dataclass(frozen=True)
class RecipientSnapshot:
    username: str
    percentage: float
    wallet: str | None = None


def inspect_distribution_risk(recipients: Sequence[RecipientSnapshot]) -> list[SafetyAlert]:
    if not recipients:
        return [
            SafetyAlert("high", "NO_RECIPIENTS", "No recipients were resolved for this distribution.")
        ]

    alerts: list[SafetyAlert] = []

    bot_share = sum(float(r.percentage or 0) for r in recipients if is_system_contributor(r.username))
    if bot_share >= 50:
        alerts.append(
            SafetyAlert(
                "high",
                "BOT_HEAVY",
                f"Bot/system contributors account for {bot_share:.1f}% of allocation.",
            )
        )

    max_share = max(float(r.percentage or 0) for r in recipients)
    if len(recipients) >= 3 and max_share >= 95:
        alerts.append(
            SafetyAlert(
                "medium",
                "OUTLIER_SHARE",
                f"One recipient has {max_share:.1f}% share; review before paying.",
            )
        )

    missing = sum(1 for r in recipients if not r.wallet)
    if missing:
        alerts.append(
            SafetyAlert(
                "low",
                "MISSING_WALLETS",
                f"{missing} recipients are missing verified wallets and will not be paid now.",
            )
        )

    return alerts


def has_safety_override(text: str | None) -> bool:
    lowered = (text or "").lower()
    return any(phrase in lowered for phrase in OVERRIDE_PHRASES)


def should_block_for_safety(alerts: Sequence[SafetyAlert], override_text: str | None = "") -> bool:
    if not any(alert.level == "high" for alert in alerts):
        return False
    return not has_safety_override(override_text)


def format_safety_block(alerts: Sequence[SafetyAlert]) -> str:
    lines = "\n".join(f"- [{alert.level.upper()}] {alert.message}" for alert in alerts)
    return (
        "🛑 Safety review required before payout:\n"
        f"{lines}\n\n"
        'Reply with "override safety" to proceed anyway.'
    )
