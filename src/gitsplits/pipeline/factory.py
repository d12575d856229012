"""Wire collaborators and the controller from settings."""

from __future__ import annotations

import httpx

from gitsplits.agents.types import Collaborators
from gitsplits.backends.inference import VerifiableInferenceClient
from gitsplits.config import Settings, get_settings
from gitsplits.conversation.state import ConversationStore
from gitsplits.intents import build_default_registry
from gitsplits.observability.logging import get_logger
from gitsplits.payments.orchestrator import PaymentOrchestrator
from gitsplits.pipeline.controller import AgentController
from gitsplits.services.github import GitHubAnalyzer
from gitsplits.services.hotpay import HotPayEngine
from gitsplits.services.ledger import InMemoryLedger
from gitsplits.services.pingpay import PingPayEngine
from gitsplits.services.reputation import ReputationService
from gitsplits.telemetry import EventLog, ReplayStore

logger = get_logger(__name__)


def build_collaborators(
    settings: Settings, *, client: httpx.AsyncClient | None = None
) -> Collaborators:
    inference = None
    if settings.inference_provider != "off":
        inference = VerifiableInferenceClient.from_settings(settings, client=client)
    return Collaborators(
        analyzer=GitHubAnalyzer.from_settings(settings, client=client),
        ledger=InMemoryLedger(),
        payments=PaymentOrchestrator(
            pingpay=PingPayEngine.from_settings(settings, client=client),
            hotpay=HotPayEngine.from_settings(settings, client=client),
            native_token=settings.native_token,
        ),
        reputation=ReputationService.from_settings(settings, client=client),
        inference=inference,
    )


def build_controller(
    settings: Settings | None = None, *, client: httpx.AsyncClient | None = None
) -> AgentController:
    settings = settings or get_settings()
    controller = AgentController(
        registry=build_default_registry(),
        tools=build_collaborators(settings, client=client),
        settings=settings,
        store=ConversationStore(
            default_execution_mode=settings.default_execution_mode,
            capacity=settings.conversation_capacity,
        ),
        replay_store=ReplayStore(
            capacity=settings.replay_capacity,
            ttl_seconds=settings.replay_ttl_seconds,
        ),
        event_log=EventLog.from_settings(settings),
    )
    logger.info(
        "controller_built",
        environment=settings.environment,
        execution_mode=settings.default_execution_mode,
        inference_provider=settings.inference_provider,
    )
    return controller
