"""GitSplits configuration module."""

from gitsplits.config.provider_modes import (
    ProviderMode,
    effective_engine_mode,
    effective_inference_provider,
    provider_modes,
)
from gitsplits.config.settings import (
    Settings,
    get_settings,
    has_credential,
    reset_settings_cache,
    settings,
)

__all__ = [
    "settings",
    "Settings",
    "get_settings",
    "has_credential",
    "reset_settings_cache",
    "ProviderMode",
    "effective_engine_mode",
    "effective_inference_provider",
    "provider_modes",
]
