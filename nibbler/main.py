import json
import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.json import JSON
from rich.logging import RichHandler
from rich.markup import escape

from .config import get_settings
from .documents import JsonDocument
from .errors import NibblerError
from .schema import load_schema


app = typer.Typer(help="Declarative data extraction from HTML and JSON documents")
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every rule visit")
):
    """Configure logging for all commands."""
    level = "DEBUG" if verbose else get_settings().log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.command()
def run(
    schema_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON schema definition"),
    document: Path = typer.Argument(..., exists=True, dir_okay=False, help="HTML or JSON document to parse"),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output JSON file path"
    )
):
    """Parse a document with a schema definition and print the record."""
    try:
        schema = load_schema(schema_file)
        record = schema.parse(document.read_bytes())
    except ValidationError as e:
        console.print(f"[red]Invalid schema definition {schema_file}:[/red]\n{escape(str(e))}")
        raise typer.Exit(1)
    except (NibblerError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    data = record.to_mapping()

    if output:
        with open(output, 'w') as f:
            json.dump(data, f, indent=2, default=str)
        console.print(f"[green]Saved to {output}[/green]")
    else:
        console.print(JSON(json.dumps(data, default=str)))


@app.command()
def query(
    document: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON document"),
    selector: str = typer.Argument(..., help="Path selector, e.g. '$..name'"),
    first: bool = typer.Option(False, "--first", "-f", help="Print only the first match")
):
    """Evaluate a path selector against a JSON document."""
    try:
        doc = JsonDocument.loads(document.read_bytes())
        result = doc.at(selector) if first else doc.search(selector)
    except (NibblerError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print(JSON(json.dumps(result)))


if __name__ == "__main__":
    app()
