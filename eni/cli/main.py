"""
Root entrypoint for the Evernote import CLI.

This module defines the top-level `eni` command and mounts the sub-apps
from other modules under eni/cli/:

    • eni/cli/parse_cli.py   →  `eni parse ...`
    • eni/cli/import_cli.py  →  `eni import ...`

Typical flow:

    Inspect an export without touching any backend:
        eni parse inspect export.enex

    Rehearse the full pipeline offline:
        eni import run export.enex --user-id <uuid> --dry-run --verbose

    Import for real, then check on the job:
        eni import run export.enex --user-id <uuid>
        eni import status <job-id>
"""

# ---------------------------------------------------------------------------
# Imports (must be at top to satisfy flake8 E402)
# ---------------------------------------------------------------------------
from dotenv import load_dotenv
import typer

from .import_cli import import_app
from .parse_cli import parse_app

# Load environment variables
load_dotenv()

# ---------------------------------------------------------------------------
# Root CLI application
# ---------------------------------------------------------------------------
cli = typer.Typer(
    help=(
        "Evernote export importer.\n\n"
        "  Inspect an export:\n"
        "      eni parse inspect <file.enex>\n\n"
        "  Import exports into Supabase:\n"
        "      eni import run <file.enex> [<file.txt> ...] --user-id <uuid>\n\n"
        "  Follow import jobs:\n"
        "      eni import status <job-id>\n"
        "      eni import list --user-id <uuid>"
    )
)

# ---------------------------------------------------------------------------
# Register sub-applications
# ---------------------------------------------------------------------------
cli.add_typer(parse_app, name="parse")
cli.add_typer(import_app, name="import")

# ---------------------------------------------------------------------------
# Entry point for `python -m eni.cli.main`
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    cli()
