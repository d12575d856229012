"""Application settings using Pydantic."""

import os
from functools import lru_cache
from typing import Annotated, Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

ExecutionModeSetting = Literal["advisor", "draft", "execute"]


def _split_csv(v: Any) -> list[str]:
    if v is None or v == "":
        return []
    if isinstance(v, str):
        return [p.strip() for p in v.split(",") if p.strip()]
    return list(v)


def has_credential(value: str | None) -> bool:
    """Return True for a usable credential (empty and 'placeholder' count as unset)."""
    cleaned = (value or "").strip()
    return bool(cleaned) and cleaned.lower() != "placeholder"


class Settings(BaseSettings):
    """Agent configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: str = Field(
        default=os.getenv("ENVIRONMENT", "development"),
        description="Deployment environment (development|test|production)",
    )

    # Conversation / pipeline behaviour
    default_execution_mode: ExecutionModeSetting = Field(
        default="execute",
        description="Execution mode assigned to new conversations.",
    )
    plan_ttl_seconds: float = Field(
        default=600.0,
        description="Seconds an action plan stays approvable after creation.",
    )
    require_approval: bool = Field(
        default=False,
        description="Always require an approved plan for create/pay, regardless of mode.",
    )
    min_parse_confidence: float = Field(
        default=0.45,
        description="Intent matches below this confidence are treated as low confidence.",
    )
    hands_off_min_confidence: float = Field(
        default=0.65,
        description="Minimum confidence for accepting an assisted classification in hands_off mode.",
    )
    conversation_capacity: int = Field(
        default=10_000,
        description="Maximum number of in-memory conversations (least recently used are evicted).",
    )

    # Payment policy
    allowed_tokens: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["NEAR", "USDC"],
        description="Tokens the pay intent may distribute.",
    )
    max_payout_amount: float = Field(
        default=250.0,
        description="Largest amount a single pay command may distribute.",
    )
    canary_only_pay: bool = Field(
        default=False,
        description="In production, restrict pay to the canary repositories.",
    )
    canary_repos: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Canary repositories (owner/repo or github URLs). Env var can be comma-separated.",
    )
    native_token: str = Field(
        default="NEAR",
        description="Chain-native token; payouts in it prefer the chain-native engine.",
    )

    # Telemetry / replay
    event_log_dir: str = Field(
        default="runtime_logs",
        description="Directory for the append-only agent event log (relative to repo root).",
    )
    replay_capacity: int = Field(default=500, description="Replayable commands kept in memory.")
    replay_ttl_seconds: float = Field(
        default=86_400.0,
        description="Replayable commands older than this cannot be replayed.",
    )

    # Links / identity
    web_app_base_url: str = Field(
        default="https://gitsplits.vercel.app",
        description="Public web app; verification links are derived from it.",
    )
    owner_account_id: str = Field(
        default="",
        description="Fallback NEAR account that owns splits created from social channels.",
    )

    # Repository analysis
    github_api_base: str = "https://api.github.com"
    github_token: str = ""
    github_timeout_seconds: float = 15.0

    # Engine A: cross-chain intents rail
    pingpay_api_key: str = ""
    pingpay_api_base: str = "https://api.pingpay.io"
    pingpay_intents_path: str = "/v1/intents"
    pingpay_auth_mode: Literal["", "publishable", "bearer"] = Field(
        default="",
        description="Auth header style; empty infers publishable for pk_ keys.",
    )

    # Engine B: chain-native rail
    hotpay_jwt: str = ""
    hotpay_api_base: str = "https://api.hot-labs.org"
    hotpay_merchant_account: str = "gitsplits.near"
    hotpay_webhook_url: str = ""

    payment_timeout_seconds: float = 30.0

    # Verifiable inference
    inference_provider: Literal["real", "fake", "off"] = Field(
        default="real",
        description="real=call the inference API, fake=deterministic local replies, off=disable.",
    )
    inference_api_base: str = "https://determinal-api.eigenarcade.com"
    inference_api_key: str = ""
    inference_model: str = "gpt-oss-120b-f16"
    inference_seed: int = 42
    inference_timeout_seconds: float = 30.0
    assist_use_llm_in_test: bool = Field(
        default=False,
        description="Allow the assisted classifier to call the LLM when ENVIRONMENT=test.",
    )

    # Reputation
    reputation_api_base: str = ""
    reputation_min_payout_score: float = 50.0

    # Circuit Breaker Configuration
    circuit_breaker_enabled: bool = Field(
        default=True,
        description="Enable circuit breaker for inference calls.",
    )
    circuit_breaker_failure_threshold: int = Field(
        default=5,
        description="Number of failures before opening circuit.",
    )
    circuit_breaker_recovery_timeout: float = Field(
        default=30.0,
        description="Seconds to wait before attempting recovery (half-open state).",
    )

    # API Configuration
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    api_key: str = "dev-api-key"  # Override in production

    # Observability
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"
    enable_telemetry: bool = True

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """Ensure default API key is not used in production."""
        if os.getenv("ENVIRONMENT") == "production" and v == "dev-api-key":
            raise ValueError("Cannot use default API key in production. Set API_KEY env var.")
        return v

    @field_validator("allowed_tokens", "canary_repos", mode="before")
    @classmethod
    def _split_lists(cls, v: Any) -> list[str]:
        return _split_csv(v)

    @field_validator("allowed_tokens")
    @classmethod
    def _upper_tokens(cls, v: list[str]) -> list[str]:
        return [token.upper() for token in v]

    @field_validator("native_token")
    @classmethod
    def _upper_native(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def validate_thresholds(self) -> "Settings":
        for name in ("min_parse_confidence", "hands_off_min_confidence"):
            value = getattr(self, name)
            if not 0 < value <= 1:
                raise ValueError(f"{name.upper()} must be in (0, 1], got {value}")
        for name in ("replay_capacity", "conversation_capacity"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name.upper()} must be positive")
        if self.plan_ttl_seconds <= 0 or self.replay_ttl_seconds <= 0:
            raise ValueError("PLAN_TTL_SECONDS and REPLAY_TTL_SECONDS must be positive")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_test(self) -> bool:
        return self.environment == "test"

    @property
    def verify_base_url(self) -> str:
        return f"{self.web_app_base_url.strip().rstrip('/')}/verify"

    @property
    def hotpay_configured(self) -> bool:
        return has_credential(self.hotpay_jwt)

    @property
    def pingpay_configured(self) -> bool:
        return has_credential(self.pingpay_api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Lazily construct Settings so tests and CLIs can set env vars before first access.
    return Settings()


def reset_settings_cache() -> None:
    get_settings.cache_clear()


class _SettingsProxy:
    """Lazy proxy for Settings.

    Avoids eager settings instantiation at import time, which would make tests
    order-dependent when env vars are changed during `pytest_configure()`.
    """

    def __getattr__(self, name: str) -> Any:
        return getattr(get_settings(), name)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<SettingsProxy {get_settings()!r}>"


settings = _SettingsProxy()
