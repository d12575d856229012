"""Assisted intent classification for messages the patterns cannot place.

Three tiers: verifiable-inference classification, then a keyword/repository
heuristic, then nothing. `assist_intent` never raises.
"""

from __future__ import annotations

import re
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from gitsplits.agents.types import IntentMatch
from gitsplits.backends.inference import extract_json_block, sanitize_inference_content
from gitsplits.backends.protocols import InferenceProvider
from gitsplits.config import Settings
from gitsplits.observability.logging import get_logger

logger = get_logger("agents.classifier")

AssistedIntentName = Literal["analyze", "create", "pay", "verify", "pending"]

_REPO_RE = re.compile(r"(?:github\.com/)?([a-zA-Z0-9_.-]+/[a-zA-Z0-9_.-]+)", re.IGNORECASE)
_MENTION_RE = re.compile(r"@([a-zA-Z0-9_.\-\[\]]+)")
_PAY_RE = re.compile(r"(?:pay|send|distribute)\s+(\d+(?:\.\d+)?)\s*([a-zA-Z0-9]+)?", re.IGNORECASE)

_CONFIDENCE_WORDS = {"high": 0.9, "medium": 0.7, "low": 0.5}


class AssistedIntent(BaseModel):
    """Result of assisted classification."""

    intent_name: AssistedIntentName = Field(
        validation_alias=AliasChoices("intent_name", "intentName", "intent"),
        description="Which intent the message most likely asks for",
    )
    params: dict[str, Any] = Field(default_factory=dict)
    confidence: float = Field(default=0.5, description="Classification confidence (0-1)")
    outcomes: list[str] = Field(default_factory=list)
    rationale: str = "LLM-assisted classification."
    source: Literal["llm", "heuristic"] = "llm"

    @field_validator("confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, v: Any) -> float:
        # LLMs sometimes answer "high"/"medium" instead of a number.
        if isinstance(v, str):
            try:
                v = float(v)
            except ValueError:
                v = _CONFIDENCE_WORDS.get(v.strip().lower(), 0.5)
        if not isinstance(v, (int, float)) or isinstance(v, bool):
            v = 0.5
        return max(0.0, min(1.0, float(v)))

    @field_validator("outcomes", mode="before")
    @classmethod
    def _coerce_outcomes(cls, v: Any) -> list[str]:
        if isinstance(v, list):
            return [str(item) for item in v]
        return []

    @field_validator("params", mode="before")
    @classmethod
    def _coerce_params(cls, v: Any) -> dict[str, Any]:
        return dict(v) if isinstance(v, dict) else {}

    def to_match(self) -> IntentMatch:
        return IntentMatch(
            name=self.intent_name,
            params=_normalize_params(self.intent_name, self.params),
            confidence=self.confidence,
            source=self.source,
        )


CLASSIFICATION_PROMPT = (
    "Classify user requests for a GitHub contributor payout agent. "
    "Return strict JSON only with keys: intent_name, params, confidence, outcomes, rationale. "
    "intent_name must be one of: analyze, create, pay, verify, pending. "
    "params may contain repo, allocation, amount, token, target, github_username. "
    "Normalize repo to github.com/owner/repo when possible."
)


def _normalize_params(name: str, params: dict[str, Any]) -> dict[str, Any]:
    out = {k: v for k, v in params.items() if v is not None}
    if name == "pay":
        if "amount" in out:
            try:
                out["amount"] = float(out["amount"])
            except (TypeError, ValueError):
                pass
        out["token"] = str(out.get("token") or "NEAR").upper()
    if name == "create":
        out.setdefault("allocation", "default")
    if name == "pending" and "target" not in out and out.get("repo"):
        out["target"] = out.pop("repo")
    return out


def _first_repo(text: str) -> str | None:
    match = _REPO_RE.search(text)
    return f"github.com/{match.group(1)}" if match else None


def heuristic_assist(text: str) -> AssistedIntent | None:
    lower = text.lower()
    repo = _first_repo(text)

    if ("analy" in lower or "contributor" in lower) and repo:
        return AssistedIntent(
            intent_name="analyze",
            params={"repo": repo},
            confidence=0.72,
            outcomes=[
                "Fetch contributor history",
                "Compute verification coverage",
                "Propose next split action",
            ],
            rationale="Detected repository analysis intent.",
            source="heuristic",
        )

    if ("create" in lower or "split" in lower or "distribution" in lower) and repo:
        return AssistedIntent(
            intent_name="create",
            params={"repo": repo, "allocation": "default"},
            confidence=0.69,
            outcomes=[
                "Create/refresh split",
                "Map contributors to percentages",
                "Report verification gaps",
            ],
            rationale="Detected split creation intent.",
            source="heuristic",
        )

    pay = _PAY_RE.search(text)
    if pay and repo:
        return AssistedIntent(
            intent_name="pay",
            params={
                "amount": float(pay.group(1)),
                "token": (pay.group(2) or "NEAR").upper(),
                "repo": repo,
            },
            confidence=0.7,
            outcomes=[
                "Validate verified recipients",
                "Apply payout policy",
                "Execute payment via configured engine",
            ],
            rationale="Detected payment intent with amount and repository.",
            source="heuristic",
        )

    mention = _MENTION_RE.search(text)
    if ("verify" in lower or "link wallet" in lower) and (repo or mention):
        params: dict[str, Any] = {"repo": repo}
        if not repo and mention is not None:
            params = {"github_username": mention.group(1)}
        return AssistedIntent(
            intent_name="verify",
            params=params,
            confidence=0.62,
            outcomes=[
                "Check current verification coverage",
                "Generate verification links",
                "Suggest outreach artifacts",
            ],
            rationale="Detected verification-related request.",
            source="heuristic",
        )

    if "pending" in lower and repo:
        return AssistedIntent(
            intent_name="pending",
            params={"target": repo},
            confidence=0.65,
            outcomes=["Fetch pending claims by contributor", "Summarize blocked payouts"],
            rationale="Detected pending claims request.",
            source="heuristic",
        )

    return None


async def assist_intent(
    text: str,
    *,
    inference: Optional[InferenceProvider],
    settings: Settings,
) -> AssistedIntent | None:
    """Classify `text` with the inference provider, falling back to the heuristic."""
    if inference is None or (settings.is_test and not settings.assist_use_llm_in_test):
        return heuristic_assist(text)

    try:
        reply = await inference.chat(
            [
                {"role": "system", "content": CLASSIFICATION_PROMPT},
                {"role": "user", "content": text},
            ],
            max_tokens=220,
            temperature=0.1,
        )
        data = extract_json_block(sanitize_inference_content(reply.content))
        if data is None:
            logger.info("assist_llm_unparseable", mock=reply.mock)
            return heuristic_assist(text)
        result = AssistedIntent.model_validate({**data, "source": "llm"})
    except Exception as exc:
        logger.warning("assist_llm_failed", error=str(exc))
        return heuristic_assist(text)

    logger.info(
        "assist_llm_classified",
        intent=result.intent_name,
        confidence=result.confidence,
    )
    return result


def format_assisted_suggestion(suggestion: AssistedIntent) -> str:
    outcomes = "\n".join(f"- {outcome}" for outcome in suggestion.outcomes)
    return (
        f"🤖 Hands-off intent interpretation ({suggestion.source}, "
        f"confidence {suggestion.confidence:.2f}).\n"
        f"Intent: {suggestion.intent_name}\n"
        f"Rationale: {suggestion.rationale}\n\n"
        f"Suggested outcomes:\n{outcomes}"
    )


__all__ = [
    "AssistedIntent",
    "AssistedIntentName",
    "CLASSIFICATION_PROMPT",
    "assist_intent",
    "format_assisted_suggestion",
    "heuristic_assist",
]
