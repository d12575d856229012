"""GitSplits observability module - structured logging.

Two outputs exist:
1. **Logging**: structured JSON logs via structlog (this module)
2. **Event log**: the append-only agent event log in `gitsplits.telemetry`

Usage:
    from gitsplits.observability import get_logger

    logger = get_logger(__name__)
    logger.info("plan_created", plan_id=plan.id)
"""

from __future__ import annotations

from gitsplits.observability.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
    "init_observability",
]

_OBSERVABILITY_INITIALIZED = False


def init_observability() -> None:
    """Initialize logging for the process (idempotent).

    Not executed on import so `gitsplits` can be used as a library without
    mutating global logging configuration.
    """
    global _OBSERVABILITY_INITIALIZED
    if _OBSERVABILITY_INITIALIZED:
        return
    from gitsplits.config import settings

    configure_logging(settings.log_level, settings.log_format)
    _OBSERVABILITY_INITIALIZED = True
