"""Talk to the agent from the terminal."""

from __future__ import annotations

import anyio
import click

from gitsplits.agents.types import InboundMessage
from gitsplits.cli.ui import console, render_reply
from gitsplits.pipeline import AgentController, build_controller

CHANNELS = ("cast", "dm", "web")
_EXIT_WORDS = {"exit", "quit", ":q"}


def _message(text: str, author: str, channel: str, near_account: str | None) -> InboundMessage:
    return InboundMessage(
        text=text,
        author=author,
        channel=channel,  # type: ignore[arg-type]
        near_account_id=near_account,
    )


@click.command("send")
@click.argument("text")
@click.option("--author", default="cli-user", show_default=True, help="Sender handle")
@click.option(
    "--channel", type=click.Choice(CHANNELS), default="dm", show_default=True, help="Transport"
)
@click.option("--near-account", default=None, help="NEAR account attached to the message")
def send(text: str, author: str, channel: str, near_account: str | None) -> None:
    """Send one message to the agent and print the reply."""
    controller = build_controller()

    async def _run() -> str:
        return await controller.process_message(_message(text, author, channel, near_account))

    render_reply(anyio.run(_run))


async def _repl_loop(
    controller: AgentController, author: str, channel: str, near_account: str | None
) -> None:
    while True:
        try:
            text = await anyio.to_thread.run_sync(lambda: click.prompt(author, prompt_suffix="> "))
        except (EOFError, click.Abort):
            break
        text = text.strip()
        if not text:
            continue
        if text.lower() in _EXIT_WORDS:
            break
        reply = await controller.process_message(_message(text, author, channel, near_account))
        render_reply(reply)


@click.command("repl")
@click.option("--author", default="cli-user", show_default=True, help="Sender handle")
@click.option(
    "--channel", type=click.Choice(CHANNELS), default="dm", show_default=True, help="Transport"
)
@click.option("--near-account", default=None, help="NEAR account attached to messages")
def repl(author: str, channel: str, near_account: str | None) -> None:
    """Interactive session; conversation state persists until exit."""
    controller = build_controller()
    console.print("[bold]GitSplits agent[/bold] (type 'exit' to quit)")
    anyio.run(_repl_loop, controller, author, channel, near_account)
    console.print("[yellow]👋 Bye[/yellow]")


def register(cli: click.Group) -> None:
    cli.add_command(send)
    cli.add_command(repl)
