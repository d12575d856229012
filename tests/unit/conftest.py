"""Unit-test fixtures built on the in-memory fakes."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from fakes import FakeAnalyzer, FakeEngine, Harness, ManualClock
from gitsplits.agents.types import Collaborators
from gitsplits.config import Settings
from gitsplits.intents import build_default_registry
from gitsplits.payments import PaymentOrchestrator
from gitsplits.pipeline import AgentController
from gitsplits.services.ledger import InMemoryLedger
from gitsplits.services.reputation import ReputationService
from gitsplits.telemetry import EventLog


@pytest.fixture
def make_harness(tmp_path) -> Callable[..., Harness]:
    def _make(*, registry=None, analyzer: FakeAnalyzer | None = None, **overrides: Any) -> Harness:
        settings = Settings(**overrides)
        clock = ManualClock()
        analyzer = analyzer or FakeAnalyzer()
        ledger = InMemoryLedger(clock=clock)
        pingpay = FakeEngine("pingpay")
        hotpay = FakeEngine("hotpay")
        events = EventLog(tmp_path / "agent-events.ndjson")
        tools = Collaborators(
            analyzer=analyzer,
            ledger=ledger,
            payments=PaymentOrchestrator(pingpay=pingpay, hotpay=hotpay, native_token="NEAR"),
            reputation=ReputationService(),
            inference=None,
        )
        controller = AgentController(
            registry=registry or build_default_registry(),
            tools=tools,
            settings=settings,
            event_log=events,
            clock=clock,
        )
        return Harness(controller, analyzer, ledger, pingpay, hotpay, clock, events)

    return _make


@pytest.fixture
def harness(make_harness) -> Harness:
    return make_harness()
