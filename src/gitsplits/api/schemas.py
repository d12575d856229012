"""Request/response models for OpenAPI."""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Machine-readable error code")
    detail: Optional[str | Dict[str, Any]] = Field(
        None, description="Human-readable or structured error detail"
    )


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str
    degraded_mode: bool = False
    provider_modes: Dict[str, str] = Field(default_factory=dict)
    inference_circuit: Optional[str] = Field(
        None, description="Circuit breaker state: closed, open, or half_open"
    )


class AgentMessageRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=4000)
    author: str = Field(..., min_length=1, max_length=200)
    channel: Literal["cast", "dm", "web"] = "dm"
    wallet_address: Optional[str] = None
    near_account_id: Optional[str] = None
    evm_address: Optional[str] = None


class AgentMessageResponse(BaseModel):
    response: str
    event_id: Optional[str] = Field(
        None, description="Event id of the turn, usable with 'replay <id>'"
    )
