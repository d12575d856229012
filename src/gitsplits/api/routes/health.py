"""Health check endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

from gitsplits.api.schemas import HealthResponse
from gitsplits.app_version import get_app_version
from gitsplits.config import provider_modes
from gitsplits.config.settings import settings

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> dict[str, Any]:
    """Liveness check; degraded collaborators are reported, not failed."""

    modes = provider_modes(settings)
    circuit_state = None
    controller = getattr(request.app.state, "controller", None)
    inference = controller.tools.inference if controller is not None else None
    breaker = getattr(inference, "breaker", None)
    if breaker is not None:
        circuit_state = breaker.state.value

    return {
        "status": "healthy",
        "version": get_app_version(),
        "environment": settings.environment,
        "degraded_mode": any(mode != "real" for mode in modes.values()),
        "provider_modes": modes,
        "inference_circuit": circuit_state,
    }
