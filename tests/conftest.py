"""Pytest configuration and shared fixtures."""

import os
import sys
import tempfile
from pathlib import Path

import httpx
import pytest

# Ensure source tree is importable without editable install
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


def pytest_configure(config):
    """Pin the environment before any Settings are built."""

    # These MUST override any developer shell/.env values to keep the run deterministic.
    os.environ["ENVIRONMENT"] = "test"
    os.environ["INFERENCE_PROVIDER"] = "fake"
    os.environ["INFERENCE_API_KEY"] = ""
    os.environ["GITHUB_TOKEN"] = ""
    os.environ["PINGPAY_API_KEY"] = ""
    os.environ["HOTPAY_JWT"] = ""
    os.environ["REPUTATION_API_BASE"] = ""
    os.environ["DEFAULT_EXECUTION_MODE"] = "execute"
    os.environ["REQUIRE_APPROVAL"] = "false"
    os.environ["API_KEY"] = "test-api-key"
    # Never write event logs into the repo during tests.
    test_artifacts_root = Path(
        os.environ.get("GITSPLITS_TEST_ARTIFACTS_DIR") or tempfile.gettempdir()
    )
    test_artifacts_root.mkdir(parents=True, exist_ok=True)
    run_dir = Path(tempfile.mkdtemp(prefix="gitsplits_run_", dir=str(test_artifacts_root)))
    os.environ["EVENT_LOG_DIR"] = str(run_dir / "events")


@pytest.fixture(autouse=True)
def fresh_settings():
    """Rebuild Settings per test so env monkeypatches take effect."""
    from gitsplits.config import reset_settings_cache

    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture(autouse=True)
def block_external_http(monkeypatch):
    """Fail the fast lane if code tries to hit the public internet.

    Allowlist only:
    - ASGI test host ("test") used with httpx.ASGITransport
    - localhost/loopback for local services
    """

    allowed_hosts = {"test", "testserver", "localhost", "127.0.0.1", "0.0.0.0"}

    async def _async_guard(self, method, url, *args, **kwargs):  # type: ignore[no-untyped-def]
        u = httpx.URL(url) if not isinstance(url, httpx.URL) else url
        if u.scheme in {"http", "https"} and (u.host or "") not in allowed_hosts:
            if not isinstance(self._transport, httpx.MockTransport):
                raise RuntimeError(f"External HTTP blocked in tests: {u!s}")
        return await _orig_async_request(self, method, url, *args, **kwargs)

    _orig_async_request = httpx.AsyncClient.request
    monkeypatch.setattr(httpx.AsyncClient, "request", _async_guard, raising=True)

    yield


@pytest.fixture
def anyio_backend() -> str:
    """Run anyio tests on asyncio (the conversation store uses asyncio locks)."""
    return "asyncio"


@pytest.fixture
def event_log(tmp_path):
    from gitsplits.telemetry import EventLog

    return EventLog(tmp_path / "agent-events.ndjson")


@pytest.fixture
def api_headers() -> dict[str, str]:
    """Default API headers for authenticated endpoints."""
    from gitsplits.config import settings

    return {"X-API-Key": settings.api_key}


@pytest.fixture
async def async_client():
    """httpx AsyncClient wired to the FastAPI app with lifespan enabled."""
    from httpx import ASGITransport, AsyncClient

    from gitsplits.api.server import app

    app.state.controller = None
    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    app.state.controller = None
