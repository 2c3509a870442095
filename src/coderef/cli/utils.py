"""Shared CLI helpers."""

from pathlib import Path

import click

from coderef.config.loader import load_config
from coderef.config.models import CodeRefConfig
from coderef.core.errors import ConfigError

root_option = click.option(
    "--root",
    "root",
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Directory holding .coderef/ (default: current directory)",
)


def load_cli_config(root: Path, **overrides: object) -> CodeRefConfig:
    """Load config for root, turning config errors into click errors."""
    try:
        return load_config(root.resolve(), **overrides)
    except ConfigError as e:
        raise click.ClickException(e.message) from e
