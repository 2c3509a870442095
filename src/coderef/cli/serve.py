"""coderef serve command - run the webhook daemon."""

import asyncio
from pathlib import Path

import click
from rich.console import Console

from coderef.cli.utils import load_cli_config, root_option
from coderef.core.logging import configure_logging
from coderef.daemon.lifecycle import run_server


@click.command()
@root_option
@click.option("--host", default=None, help="Bind address (overrides config)")
@click.option("--port", "-p", type=int, default=None, help="Port to listen on (overrides config)")
@click.pass_context
def serve_command(ctx: click.Context, root: Path, host: str | None, port: int | None) -> None:
    """Start the CodeRef daemon.

    Receives GitHub push webhooks and keeps tracked references current.
    """
    server: dict[str, object] = {}
    if host is not None:
        server["host"] = host
    if port is not None:
        server["port"] = port
    config = load_cli_config(root, **({"server": server} if server else {}))

    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    if verbose:
        config.logging.level = "DEBUG"
    configure_logging(config=config.logging)

    console = Console(stderr=True)
    base_url = f"http://{config.server.host}:{config.server.port}"
    console.print(f"[bold cyan]CodeRef[/bold cyan] listening on {base_url}", highlight=False)
    console.print(f"  Webhook  [dim]{base_url}/api/webhooks/github[/dim]", highlight=False)
    if not config.webhook.secret:
        console.print("  [yellow]No webhook secret configured[/yellow]", highlight=False)

    asyncio.run(run_server(config, root.resolve()))
