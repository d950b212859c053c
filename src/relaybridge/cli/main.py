"""relaybridge command-line entry point."""

from __future__ import annotations

import click

from relaybridge import __version__
from relaybridge.cli._config_cmd import config_group
from relaybridge.cli._run_cmd import run_cmd


@click.group()
@click.version_option(__version__, prog_name="relaybridge")
def cli() -> None:
    """Relay chat-channel conversations to a Direct Line agent."""


cli.add_command(run_cmd)
cli.add_command(config_group)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
