"""Verifiable inference client.

Chat completions against a deterministic-seed inference API that returns a
cryptographic signature alongside each completion. Providers sometimes prepend
hidden reasoning blocks or control tokens to the content; callers should pass
replies through `sanitize_inference_content` before showing or parsing them.
"""

from __future__ import annotations

import json
import re
from typing import Any

import httpx

from gitsplits.backends.protocols import InferenceReply
from gitsplits.config import Settings, has_credential
from gitsplits.config.provider_modes import ProviderMode, effective_inference_provider
from gitsplits.errors import CollaboratorUnavailable, ConfigurationError
from gitsplits.observability.logging import get_logger
from gitsplits.resilience import CircuitBreaker, CircuitBreakerError

logger = get_logger(__name__)

_END_TOKEN = "<|end|>"
_CHANNEL_WRAPPER_RE = re.compile(r"<\|channel\|>[^<]*<\|message\|>")
_CONTROL_TOKEN_RE = re.compile(r"<\|[^|]+?\|>")
_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)

MOCK_REPLY = (
    "This is a mock verifiable inference response. "
    "Set INFERENCE_API_KEY to enable real inference."
)
MOCK_SIGNATURE = "0xmocksignature"


def sanitize_inference_content(content: str | None) -> str:
    """Strip hidden reasoning and control tokens from a completion."""
    if not content:
        return ""
    last_end = content.rfind(_END_TOKEN)
    sanitized = content[last_end + len(_END_TOKEN) :] if last_end >= 0 else content
    sanitized = _CHANNEL_WRAPPER_RE.sub("", sanitized)
    sanitized = _CONTROL_TOKEN_RE.sub("", sanitized).strip()
    return sanitized or content.strip()


def looks_like_internal_reasoning(text: str) -> bool:
    normalized = text.strip().lower()
    if not normalized:
        return False
    return (
        normalized.startswith(("we need to ", "let's ", "i need to ", "the user "))
        or "chain-of-thought" in normalized
    )


def is_low_signal_output(text: str) -> bool:
    normalized = text.strip().lower()
    if normalized in {"", "assistant", "final", "assistantfinal"}:
        return True
    return len(normalized) < 24


def extract_json_block(text: str) -> dict[str, Any] | None:
    """Return the first JSON object found in `text`, or None.

    Prefers a fenced ```json block; otherwise takes the span from the first
    `{` to the last `}`.
    """
    if not text:
        return None
    fenced = _FENCED_JSON_RE.search(text)
    if fenced:
        candidate = fenced.group(1)
    else:
        start, end = text.find("{"), text.rfind("}")
        if start < 0 or end <= start:
            return None
        candidate = text[start : end + 1]
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


class VerifiableInferenceClient:
    """Async chat client for the verifiable inference API."""

    def __init__(
        self,
        *,
        api_base: str,
        api_key: str,
        model: str,
        seed: int = 42,
        timeout_seconds: float = 30.0,
        mode: ProviderMode = "real",
        production: bool = False,
        breaker: CircuitBreaker | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.seed = seed
        self.timeout_seconds = timeout_seconds
        self.mode = mode
        self.production = production
        self.breaker = breaker
        self._client = client

    @classmethod
    def from_settings(
        cls, settings: Settings, *, client: httpx.AsyncClient | None = None
    ) -> "VerifiableInferenceClient":
        breaker = None
        if settings.circuit_breaker_enabled:
            breaker = CircuitBreaker(
                failure_threshold=settings.circuit_breaker_failure_threshold,
                recovery_timeout=settings.circuit_breaker_recovery_timeout,
                name="inference",
            )
        return cls(
            api_base=settings.inference_api_base,
            api_key=settings.inference_api_key,
            model=settings.inference_model,
            seed=settings.inference_seed,
            timeout_seconds=settings.inference_timeout_seconds,
            mode=effective_inference_provider(settings),
            production=settings.is_production,
            breaker=breaker,
            client=client,
        )

    @property
    def enabled(self) -> bool:
        return self.mode != "off"

    async def chat(
        self,
        messages: list[dict[str, Any]],
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> InferenceReply:
        if self.mode == "off":
            raise CollaboratorUnavailable("inference", "Verifiable inference is disabled")
        if self.mode == "fake":
            logger.debug("inference_mock_reply", model=self.model)
            return InferenceReply(
                content=MOCK_REPLY, model=self.model, signature=MOCK_SIGNATURE, mock=True
            )
        if not has_credential(self.api_key):
            raise ConfigurationError("Missing INFERENCE_API_KEY for verifiable inference")

        body: dict[str, Any] = {"model": self.model, "messages": messages, "seed": self.seed}
        if temperature is not None:
            body["temperature"] = temperature
        if max_tokens is not None:
            body["max_tokens"] = max_tokens

        try:
            if self.breaker is not None:
                data = await self.breaker.call(self._post, body)
            else:
                data = await self._post(body)
        except CircuitBreakerError as exc:
            raise CollaboratorUnavailable("inference", str(exc)) from exc

        choices = data.get("choices") or []
        content = ""
        if choices:
            content = str((choices[0].get("message") or {}).get("content") or "")
        signature = data.get("signature")
        logger.info(
            "inference_completed",
            model=data.get("model") or self.model,
            signed=bool(signature),
        )
        return InferenceReply(
            content=content,
            model=str(data.get("model") or self.model),
            signature=str(signature) if signature else None,
        )

    async def _post(self, body: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.api_base}/api/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            if self._client is not None:
                response = await self._client.post(url, json=body, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.post(url, json=body, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise CollaboratorUnavailable(
                "inference",
                f"Chat completion failed ({exc.response.status_code})",
                status_code=exc.response.status_code,
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise CollaboratorUnavailable("inference", f"Chat completion failed: {exc}") from exc
        if not isinstance(data, dict):
            raise CollaboratorUnavailable("inference", "Chat completion returned non-object JSON")
        return data
