"""coderef status command - show daemon status."""

import json
from pathlib import Path

import click
import httpx

from coderef.cli.utils import load_cli_config, root_option


@click.command()
@root_option
@click.option("--port", "-p", type=int, default=None, help="Daemon port (default: server.port)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def status_command(root: Path, port: int | None, as_json: bool) -> None:
    """Show CodeRef daemon status."""
    port = port or load_cli_config(root).server.port

    try:
        response = httpx.get(f"http://127.0.0.1:{port}/status", timeout=5.0)
        status_data = response.json()
    except (httpx.RequestError, json.JSONDecodeError) as e:
        if as_json:
            click.echo(json.dumps({"running": False, "port": port, "error": str(e)}))
        else:
            click.echo(f"Daemon: not reachable on port {port}")
            click.echo(f"Status: unavailable ({e})")
        return

    if as_json:
        click.echo(json.dumps({"running": True, "port": port, **status_data}))
        return

    click.echo(f"Daemon: running (port {port}, version {status_data.get('version', 'unknown')})")

    consumer = status_data.get("consumer", {})
    click.echo(f"Consumer: {consumer.get('state', 'unknown')}")
    if consumer.get("last_error"):
        click.echo(f"  Last error: {consumer['last_error']}")

    events = status_data.get("events", {})
    click.echo(
        "Events: "
        + ", ".join(f"{events.get(name, 0)} {name}" for name in ("pending", "processing", "completed", "failed"))
    )
