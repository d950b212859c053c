"""``relaybridge config`` — create and inspect the config file."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.pretty import Pretty

from relaybridge.core.config import config_path, load_config, save_config
from relaybridge.core.exceptions import ConfigError

console = Console()


@click.group("config")
def config_group() -> None:
    """Create and inspect the relaybridge config file."""


@config_group.command("init")
@click.option(
    "--bot-name", envvar="RELAYBRIDGE_BOT_NAME", required=True, help="Agent display name."
)
@click.option("--token-endpoint", envvar="RELAYBRIDGE_TOKEN_ENDPOINT", default="")
@click.option("--secret", envvar="RELAYBRIDGE_DIRECTLINE_SECRET", default="")
@click.option("--interval-ms", type=int, default=1000, show_default=True)
@click.option("--timeout-ms", type=int, default=10_000, show_default=True)
@click.option("--path", "target", default="", help="Where to write (default: auto-detect).")
@click.option("--force", is_flag=True, help="Overwrite an existing file.")
def config_init_cmd(
    bot_name: str,
    token_endpoint: str,
    secret: str,
    interval_ms: int,
    timeout_ms: int,
    target: str,
    force: bool,
) -> None:
    """Write a new config file."""
    path = Path(target) if target else config_path()
    if path.exists() and not force:
        console.print(f"[yellow]Config already exists:[/yellow] {path} (use --force)")
        sys.exit(1)

    backend: dict[str, Any] = {"bot_name": bot_name}
    if token_endpoint:
        backend["token_endpoint"] = token_endpoint
    if secret:
        backend["directline_secret"] = secret

    data = {
        "backend": backend,
        "polling": {"interval_ms": interval_ms, "response_timeout_ms": timeout_ms},
    }
    try:
        written = save_config(data, path)
    except ConfigError as exc:
        console.print(f"[red]{exc}[/red]")
        sys.exit(1)
    console.print(f"[green]Config written:[/green] {written}")


@config_group.command("show")
@click.option("--path", "source", default="", help="Config file (default: auto-detect).")
def config_show_cmd(source: str) -> None:
    """Print the validated config with secrets masked."""
    try:
        cfg = load_config(Path(source) if source else None)
    except ConfigError as exc:
        console.print(f"[red]{exc}[/red]")
        sys.exit(1)
    console.print(Pretty(cfg.redacted()))
