"""coderef process / requeue commands - operate on the event queue offline."""

import asyncio
import json
from pathlib import Path

import click
from rich.console import Console

from coderef.cli.utils import load_cli_config, root_option
from coderef.config.constants import PENDING_BATCH_MAX
from coderef.daemon.consumer import BatchResult
from coderef.daemon.lifecycle import build_controller, open_store
from coderef.tracking.errors import EventNotFoundError, EventStateError


async def _run_batch(root: Path, limit: int | None) -> BatchResult:
    controller = build_controller(load_cli_config(root), root.resolve())
    try:
        return await controller.consumer.run_once(limit)
    finally:
        controller.store.db.dispose()


@click.command()
@root_option
@click.option(
    "--limit",
    type=click.IntRange(1, PENDING_BATCH_MAX),
    default=None,
    help="Maximum events to pull (default: consumer.batch_size)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def process_command(root: Path, limit: int | None, as_json: bool) -> None:
    """Process one batch of pending change events."""
    result = asyncio.run(_run_batch(root, limit))

    if as_json:
        click.echo(json.dumps(result.to_dict()))
        return

    console = Console()
    if not result.pulled:
        console.print("No pending events")
        return
    console.print(
        f"Processed {result.pulled} event(s): "
        f"[green]{result.completed} completed[/green], "
        f"[red]{result.failed} failed[/red], {result.skipped} skipped",
        highlight=False,
    )
    for outcome in result.outcomes:
        if outcome.error_message:
            console.print(f"  [red]•[/red] {outcome.event_id}: {outcome.error_message}", highlight=False)


@click.command()
@root_option
@click.argument("event_id")
def requeue_command(root: Path, event_id: str) -> None:
    """Return failed event EVENT_ID to the pending queue."""
    store = open_store(load_cli_config(root), root.resolve())
    try:
        event = store.requeue_event(event_id)
    except (EventNotFoundError, EventStateError) as e:
        raise click.ClickException(str(e)) from e
    finally:
        store.db.dispose()
    click.echo(f"Requeued {event.id} ({event.file_path})")
