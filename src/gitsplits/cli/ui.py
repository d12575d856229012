"""Shared CLI UI helpers (Rich formatting)."""

from __future__ import annotations

from typing import Any, Iterable

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

console = Console()

_EVENT_COLORS = {
    "policy_block": "red",
    "pipeline_error": "red",
    "intent_failed": "red",
    "plan_created": "yellow",
    "plan_expired": "yellow",
    "plan_mismatch": "yellow",
    "intent_executed": "green",
    "plan_executed": "green",
}


def format_event_type(event_type: str) -> str:
    color = _EVENT_COLORS.get(event_type, "cyan")
    return f"[{color}]{event_type}[/{color}]"


def render_reply(reply: str, *, title: str = "gitsplits") -> None:
    console.print(Panel(Text(reply), title=title, expand=False))


def render_events_table(events: Iterable[dict[str, Any]]) -> None:
    """Render event log entries using Rich."""
    table = Table(title="Agent Events", show_lines=False)
    table.add_column("Timestamp", style="white")
    table.add_column("Type", style="bold")
    table.add_column("Event ID", style="magenta")
    table.add_column("Details", style="white")

    for event in events:
        details = {
            k: v for k, v in event.items() if k not in {"timestamp", "type", "event_id"}
        }
        table.add_row(
            str(event.get("timestamp", "-")),
            format_event_type(str(event.get("type", ""))),
            escape(str(event.get("event_id") or "-")),
            escape(", ".join(f"{k}={v}" for k, v in details.items())) or "-",
        )

    console.print(table)
