"""Provider mode helpers.

Centralizes the "effective provider mode" rules so the inference client, the
payment engines and the health endpoint agree on when a collaborator is live.

Rule:
- Per-provider mode is the source of truth ("real" | "fake" | "off")
- A "real" provider without credentials degrades to "fake" outside production
  and is a configuration error in production.
"""

from __future__ import annotations

from typing import Literal

from gitsplits.config.settings import Settings, has_credential

ProviderMode = Literal["real", "fake", "off"]


def _coerce_mode(value: object, *, default: ProviderMode) -> ProviderMode:
    """Best-effort normalize provider mode.

    Unknown/invalid values fall back to `default` (fail-closed when default="real").
    """
    if isinstance(value, str):
        lowered = value.lower()
        if lowered in {"real", "fake", "off"}:
            return lowered  # type: ignore[return-value]
    return default


def _credentialed_mode(mode: ProviderMode, *, configured: bool) -> ProviderMode:
    if mode == "real" and not configured:
        return "fake"
    return mode


def effective_inference_provider(settings: Settings) -> ProviderMode:
    mode = _coerce_mode(getattr(settings, "inference_provider", "real"), default="real")
    if settings.is_production:
        return mode
    return _credentialed_mode(mode, configured=has_credential(settings.inference_api_key))


def effective_engine_mode(settings: Settings, *, configured: bool) -> ProviderMode:
    """Payment engines have no explicit toggle: credentials decide real vs mock."""
    if settings.is_production:
        return "real"
    return _credentialed_mode("real", configured=configured)


def provider_modes(settings: Settings) -> dict[str, ProviderMode]:
    return {
        "inference": effective_inference_provider(settings),
        "pingpay": effective_engine_mode(settings, configured=settings.pingpay_configured),
        "hotpay": effective_engine_mode(settings, configured=settings.hotpay_configured),
    }
