"""
parse_cli.py

Typer command group for inspecting an export without importing it.

    eni parse inspect export.enex          human-readable summary
    eni parse inspect export.enex --json   full parsed document as JSON

Nothing is uploaded and nothing is written to Supabase. This is the quickest
way to see which notes a file holds, which ones the parser would reject, and
how many attachments each note carries.
"""

import json
from dataclasses import asdict
from pathlib import Path

import typer

from eni.exceptions import ParseError
from eni.ingestion.resource_extraction import calculate_total_resource_size
from eni.models import ExportDocument
from eni.parsers.enex import is_valid_enex, parse_enex
from eni.parsers.text import parse_text_file

# ---------------------------------------------------------------------------
# Create the Typer sub-application for `eni parse`
# ---------------------------------------------------------------------------
parse_app = typer.Typer(help="Parse an export file and report what it contains.")


def load_document(path: Path) -> ExportDocument:
    """Parse an .enex or .txt file from disk."""
    data = path.read_bytes()

    if path.suffix.lower() == ".txt":
        return parse_text_file(path.name, data)

    if not is_valid_enex(data):
        raise ParseError(f"{path.name} does not look like an Evernote export")
    return parse_enex(data)


# ---------------------------------------------------------------------------
# `eni parse inspect`
# ---------------------------------------------------------------------------
@parse_app.command("inspect")
def parse_inspect(
    path: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="Path to an .enex or .txt file.",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the parsed document as JSON instead of a summary.",
    ),
) -> None:
    """
    Parse one export and print a summary of its notes.

    Exits with status 1 when the file cannot be parsed.
    """
    try:
        document = load_document(path)
    except ParseError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(asdict(document), indent=2))
        return

    typer.echo(f"File: {path.name}")
    if document.application:
        typer.echo(f"Exported by: {document.application} {document.version or ''}".rstrip())
    typer.echo(f"Notes: {len(document.notes)}")

    for note in document.notes:
        size = calculate_total_resource_size(note.resources)
        tags = ", ".join(note.tags) if note.tags else "-"
        typer.echo(
            f"  • {note.title}  [tags: {tags}]  "
            f"[resources: {len(note.resources)}, ~{size} bytes]"
        )

    if document.rejected:
        typer.echo(f"Rejected: {len(document.rejected)}")
        for rejected in document.rejected:
            typer.echo(f"  • #{rejected.index} {rejected.title}: {rejected.reason}")

    for warning in document.warnings:
        typer.echo(f"Warning: {warning}")
