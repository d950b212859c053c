"""``relaybridge run`` — serve the channel endpoint."""

from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.console import Console

from relaybridge.core.config import load_config
from relaybridge.core.exceptions import ConfigError
from relaybridge.core.logging import configure_logging

console = Console(stderr=True)


@click.command("run")
@click.option("--config", "config_file", default="", help="Config file (default: auto-detect).")
@click.option("--host", default="", help="Override server.host.")
@click.option("--port", type=int, default=0, help="Override server.port.")
def run_cmd(config_file: str, host: str, port: int) -> None:
    """Start the relay HTTP endpoint (POST /api/messages)."""
    try:
        cfg = load_config(Path(config_file) if config_file else None)
    except ConfigError as exc:
        console.print(f"[red]Config error:[/red] {exc}")
        console.print("Create one with: [cyan]relaybridge config init --bot-name <name>[/cyan]")
        sys.exit(1)

    if host:
        cfg.server.host = host
    if port:
        cfg.server.port = port

    configure_logging(cfg.logging.level, cfg.logging.format)

    console.print(f"[bold]relaybridge[/bold] relaying to agent [cyan]{cfg.backend.bot_name}[/cyan]")
    console.print(f"Listening on http://{cfg.server.host}:{cfg.server.port}/api/messages")
    console.print(
        f"Polling every {cfg.polling.interval_ms}ms, up to {cfg.polling.max_attempts} attempts"
    )

    from relaybridge.channel.app import start_server

    start_server(cfg)
