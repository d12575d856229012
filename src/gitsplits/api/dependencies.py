"""Common FastAPI dependencies for the GitSplits API."""

from __future__ import annotations

from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader

from gitsplits.config import settings
from gitsplits.pipeline import AgentController, build_controller

__all__ = [
    "api_key_header",
    "get_controller",
    "verify_api_key",
]

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: str | None = Security(api_key_header)) -> str | None:
    """Check X-API-Key when an API key is configured."""

    expected = settings.api_key
    if not expected:
        return None
    if api_key is None:
        raise HTTPException(status_code=401, detail="Missing API key")
    if api_key != expected:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return api_key


def get_controller(request: Request) -> AgentController:
    """Return the process-wide controller, building it on first use."""

    controller = getattr(request.app.state, "controller", None)
    if controller is None:
        controller = build_controller()
        request.app.state.controller = controller
    return controller
