"""Configuration CLI commands."""

from __future__ import annotations

import click
from rich.table import Table

from gitsplits.cli.ui import console
from gitsplits.config import has_credential, provider_modes, settings


def _secret(value: str) -> str:
    return "set" if has_credential(value) else "[grey62]unset[/grey62]"


@click.group()
def config() -> None:
    """Inspect configuration."""


@config.command("show")
def config_show() -> None:
    """Show key configuration settings."""
    table = Table(title="GitSplits Configuration", show_lines=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Environment", settings.environment)
    table.add_row("Default execution mode", settings.default_execution_mode)
    table.add_row("Require approval", str(settings.require_approval))
    table.add_row("Plan TTL (s)", f"{settings.plan_ttl_seconds:g}")
    table.add_row("Allowed tokens", ", ".join(settings.allowed_tokens) or "-")
    table.add_row("Max payout", f"{settings.max_payout_amount:g}")
    table.add_row("Canary only pay", str(settings.canary_only_pay))
    table.add_row("Native token", settings.native_token)
    table.add_row("Event log dir", settings.event_log_dir)
    for name, mode in provider_modes(settings).items():
        table.add_row(f"Provider: {name}", mode)
    table.add_row("GitHub token", _secret(settings.github_token))
    table.add_row("Ping Pay key", _secret(settings.pingpay_api_key))
    table.add_row("HOT Pay JWT", _secret(settings.hotpay_jwt))
    table.add_row("API Host", settings.api_host)
    table.add_row("API Port", str(settings.api_port))

    console.print(table)


def register(cli: click.Group) -> None:
    cli.add_command(config)
