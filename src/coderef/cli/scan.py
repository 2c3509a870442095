"""coderef scan command - list the code links in a markdown file."""

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from coderef.links.errors import InvalidReferenceError
from coderef.links.models import CodeLink
from coderef.links.parser import parse_code_links
from coderef.links.validation import validate_link


def _problem(link: CodeLink) -> str | None:
    try:
        validate_link(link)
    except InvalidReferenceError as e:
        return e.reason
    return None


def _make_links_table(rows: list[tuple[CodeLink, str | None]]) -> Table:
    table = Table(box=None, padding=(0, 1), pad_edge=False)
    table.add_column("label", style="cyan")
    table.add_column("type")
    table.add_column("target")
    table.add_column("status")
    for link, problem in rows:
        table.add_row(
            link.label,
            link.reference_type.value,
            f"{link.owner}/{link.repo}/{link.file_path}{link.suffix}",
            "[green]ok[/green]" if problem is None else f"[red]{problem}[/red]",
        )
    return table


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def scan_command(file: Path, as_json: bool) -> None:
    """List github:// code links found in FILE.

    Exits non-zero when any link is invalid.
    """
    links = parse_code_links(file.read_text(encoding="utf-8"))
    rows = [(link, _problem(link)) for link in links]
    invalid = sum(1 for _, problem in rows if problem is not None)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "file": str(file),
                    "links": [{**link.to_dict(), "error": problem} for link, problem in rows],
                    "invalid": invalid,
                }
            )
        )
    else:
        console = Console()
        if not rows:
            console.print(f"No code links found in {file}", highlight=False)
        else:
            console.print(_make_links_table(rows))
            console.print(f"\n{len(rows)} link(s), {invalid} invalid", highlight=False)

    if invalid:
        raise SystemExit(1)
