"""FastAPI application for the GitSplits agent."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable
from uuid import uuid4

from fastapi import Depends, FastAPI, HTTPException
from fastapi.requests import Request
from fastapi.responses import JSONResponse, Response

from gitsplits.api import routes
from gitsplits.api.dependencies import api_key_header, verify_api_key
from gitsplits.api.errors import to_http_exception
from gitsplits.app_version import get_app_version
from gitsplits.config import provider_modes, settings
from gitsplits.errors import GitSplitsError
from gitsplits.observability.logging import logger, request_id_var
from gitsplits.pipeline import build_controller


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the controller once per process."""
    from gitsplits.observability import init_observability

    init_observability()
    logger.info("api_starting", environment=settings.environment)
    if getattr(app.state, "controller", None) is None:
        app.state.controller = build_controller()
    logger.info("api_ready", provider_modes=provider_modes(settings))

    yield

    logger.info("api_stopping")


app = FastAPI(
    title="GitSplits API",
    description="Conversational contributor payout agent",
    version=get_app_version(),
    lifespan=lifespan,
)


@app.middleware("http")
async def request_id_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Manage the X-Request-ID header and contextvar propagation."""

    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)

    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def timing_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "request_complete",
        path=str(request.url.path),
        method=request.method,
        status=response.status_code,
        duration_ms=round(duration_ms, 2),
    )
    response.headers["X-Response-Time-ms"] = f"{duration_ms:.2f}"
    return response


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a consistent error envelope."""
    detail = exc.detail
    if isinstance(detail, dict):
        error_code = detail.get("error", "http_error")
        detail = detail.get("detail", detail)
    else:
        error_code = "http_error"
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": error_code, "detail": detail},
        headers=exc.headers,
    )


@app.exception_handler(GitSplitsError)
async def domain_error_handler(request: Request, exc: GitSplitsError) -> JSONResponse:
    return await http_exception_handler(request, to_http_exception(exc))


auth_deps = [Depends(verify_api_key)]
app.include_router(routes.health.router)  # Public for liveness checks
app.include_router(routes.agent.router, dependencies=auth_deps)


__all__ = ["app", "verify_api_key", "api_key_header"]
