"""Event log CLI commands."""

from __future__ import annotations

import click

from gitsplits.cli.ui import console, render_events_table
from gitsplits.config import get_settings
from gitsplits.telemetry import EventLog


@click.group()
def events() -> None:
    """Inspect the agent event log."""


@events.command("tail")
@click.option("-n", "--limit", default=20, show_default=True, type=int, help="Events to show")
@click.option("--type", "event_type", default=None, help="Only show this event type")
def events_tail(limit: int, event_type: str | None) -> None:
    """Show the most recent events."""
    log = EventLog.from_settings(get_settings())
    entries = list(log.iter_events())
    if event_type:
        entries = [e for e in entries if e.get("type") == event_type]
    entries = entries[-limit:] if limit > 0 else []
    if not entries:
        console.print(f"[yellow]No events in {log.path}[/yellow]")
        return
    render_events_table(entries)


def register(cli: click.Group) -> None:
    cli.add_command(events)
