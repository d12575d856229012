"""Concrete collaborator clients."""

from gitsplits.services.github import GitHubAnalyzer
from gitsplits.services.hotpay import HotPayEngine
from gitsplits.services.ledger import InMemoryLedger
from gitsplits.services.pingpay import MOCK_STATUS, PingPayEngine
from gitsplits.services.reputation import ReputationService

__all__ = [
    "GitHubAnalyzer",
    "HotPayEngine",
    "InMemoryLedger",
    "MOCK_STATUS",
    "PingPayEngine",
    "ReputationService",
]
