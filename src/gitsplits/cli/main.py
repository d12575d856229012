"""GitSplits command-line interface.

Commands live in submodules under `gitsplits.cli.*` and register themselves
on the root group.
"""

from __future__ import annotations

import click

from gitsplits.app_version import get_app_version
from gitsplits.observability import init_observability


@click.group()
@click.version_option(version=get_app_version(), prog_name="gitsplits")
def cli() -> None:
    """GitSplits - conversational contributor payouts."""
    init_observability()


def _register_commands() -> None:
    from gitsplits.cli import agent, config, events, serve

    agent.register(cli)
    config.register(cli)
    events.register(cli)
    serve.register(cli)


_register_commands()


if __name__ == "__main__":
    cli()
