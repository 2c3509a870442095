"""CodeRef CLI - coderef command."""

import click

from coderef.cli.events import process_command, requeue_command
from coderef.cli.scan import scan_command
from coderef.cli.serve import serve_command
from coderef.cli.status import status_command
from coderef.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="coderef")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """CodeRef - Keep code snippets in documents in sync with their repositories."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "INFO")


cli.add_command(serve_command, name="serve")
cli.add_command(scan_command, name="scan")
cli.add_command(process_command, name="process")
cli.add_command(requeue_command, name="requeue")
cli.add_command(status_command, name="status")


if __name__ == "__main__":
    cli()
