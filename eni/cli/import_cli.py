"""
Import command-line interface.

This module defines the `import` command group for the Typer-based CLI.
Import logic stays in the orchestrator; these commands only build the
collaborators, call into eni.ingestion, and print results.

Public surface:

    • `import_app` → mounted in eni/cli/main.py as:

          eni import run FILE [FILE ...] --user-id <uuid> [--notebook NAME]
                         [--notebook-id ID] [--dry-run] [--verbose]
          eni import status JOB_ID
          eni import list --user-id <uuid> [--limit N]
"""

from pathlib import Path
from typing import List, NoReturn, Optional, Tuple

import typer

from eni.config import Config, load_config
from eni.exceptions import ConfigError, ImportValidationError
from eni.ingestion.batch import UploadedFile, import_batch
from eni.ingestion.orchestrator import (
    ImportOptions,
    ImportProgress,
    get_import_job_status,
    job_progress_percent,
    list_import_jobs,
)
from eni.logging_utils import log_verbose, setup_logging
from eni.storage import MemoryStorageService, create_storage_service
from eni.supabase_client import SupabaseClient
from eni.types import StorageServiceInterface

# ---------------------------------------------------------------------------
# Sub-application definition
# ---------------------------------------------------------------------------
import_app = typer.Typer(
    help=(
        "Import Evernote exports (.enex) and plain-text files (.txt).\n\n"
        "Use --dry-run to run the whole pipeline without writing to Supabase "
        "or to attachment storage."
    )
)


# ---------------------------------------------------------------------------
# Collaborator construction
# ---------------------------------------------------------------------------
def build_collaborators(
    config: Config, dry_run: bool
) -> Tuple[SupabaseClient, StorageServiceInterface]:
    """
    Create the persistence wrapper and storage backend for one CLI run.

    Dry-run never needs credentials: it pairs a dry-run SupabaseClient with
    in-memory attachment storage.
    """
    if dry_run:
        config.validate(require_supabase=False)
        return SupabaseClient(dry_run=True), MemoryStorageService()

    client = SupabaseClient.from_config(config)
    return client, create_storage_service(config, sdk_client=client.client)


def build_client(config: Config) -> SupabaseClient:
    return SupabaseClient.from_config(config)


def _exit_with_error(message: str) -> NoReturn:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# Command: eni import run
# ---------------------------------------------------------------------------
@import_app.command("run")
def import_run(
    files: List[Path] = typer.Argument(
        ...,
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="One or more .enex or .txt files (at most 5).",
    ),
    user_id: str = typer.Option(..., "--user-id", help="Owner of the imported notes."),
    notebook: Optional[str] = typer.Option(
        None,
        "--notebook",
        help="Destination notebook name (created if missing).",
    ),
    notebook_id: Optional[str] = typer.Option(
        None,
        "--notebook-id",
        help="Existing notebook id to import into.",
    ),
    dedupe: bool = typer.Option(
        False,
        "--dedupe",
        help="Reuse attachments already stored for this user instead of re-uploading.",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Run the pipeline without writing to Supabase or attachment storage.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Print per-note progress.",
    ),
) -> None:
    """
    Import one or more files, strictly one after another.

    Prints a summary of notes and attachments imported and every warning.
    Exits with status 1 when the batch is rejected before import starts.
    """
    try:
        config = load_config(notebook_name=notebook)
        setup_logging(config.log_level)
        client, storage = build_collaborators(config, dry_run)
    except ConfigError as e:
        _exit_with_error(str(e))

    uploads = [UploadedFile(filename=p.name, content=p.read_bytes()) for p in files]

    def on_progress(progress: ImportProgress) -> None:
        if progress.current_note:
            done = progress.imported + progress.failed
            log_verbose(
                f"[{done + 1}/{progress.total_notes}] {progress.current_note}",
                verbose,
            )

    def options_for(upload: UploadedFile) -> ImportOptions:
        log_verbose(f"Importing {upload.filename}...", verbose)
        return ImportOptions(
            user_id=user_id,
            filename=upload.filename,
            notebook_id=notebook_id,
            notebook_name=config.notebook_name,
            on_progress=on_progress,
            batch_size=config.batch_size,
            dedupe_resources=dedupe,
        )

    try:
        result = import_batch(uploads, client, storage, user_id, options_factory=options_for)
    except ImportValidationError as e:
        _exit_with_error(str(e))

    typer.echo("\n=== Import Summary ===")
    if dry_run:
        typer.echo("(dry run: nothing was written)")
    typer.echo(f"files_processed: {result['files_processed']}")
    typer.echo(f"notes_imported: {result['total_notes_imported']}")
    typer.echo(f"attachments_imported: {result['total_attachments_imported']}")

    for file_result in result["results"]:
        typer.echo(
            f"job {file_result['job_id']}: {file_result['status']} "
            f"({file_result['imported']}/{file_result['total_notes']} imported, "
            f"{file_result['failed']} failed)"
        )

    if result["errors"]:
        typer.echo(f"{len(result['errors'])} warning(s):")
        for err in result["errors"]:
            typer.echo(f"  • {err}")


# ---------------------------------------------------------------------------
# Command: eni import status
# ---------------------------------------------------------------------------
@import_app.command("status")
def import_status(
    job_id: str = typer.Argument(..., help="Import job id."),
) -> None:
    """Show the live progress of one import job."""
    try:
        client = build_client(load_config())
    except ConfigError as e:
        _exit_with_error(str(e))

    job = get_import_job_status(client, job_id)
    if job is None:
        _exit_with_error(f"Import job not found: {job_id}")

    typer.echo(f"id: {job.get('id')}")
    typer.echo(f"filename: {job.get('filename')}")
    typer.echo(f"status: {job.get('status')}")
    typer.echo(f"total_notes: {job.get('total_notes')}")
    typer.echo(f"imported: {job.get('imported')}")
    typer.echo(f"failed: {job.get('failed')}")
    typer.echo(f"progress: {job_progress_percent(job)}%")
    typer.echo(f"started_at: {job.get('started_at')}")
    typer.echo(f"completed_at: {job.get('completed_at')}")

    for err in job.get("errors") or []:
        typer.echo(f"  • {err}")


# ---------------------------------------------------------------------------
# Command: eni import list
# ---------------------------------------------------------------------------
@import_app.command("list")
def import_list(
    user_id: str = typer.Option(..., "--user-id", help="Owner of the jobs."),
    limit: int = typer.Option(10, "--limit", min=1, help="Number of jobs to show."),
) -> None:
    """List the user's most recent import jobs, newest first."""
    try:
        client = build_client(load_config())
    except ConfigError as e:
        _exit_with_error(str(e))

    jobs = list_import_jobs(client, user_id, limit=limit)
    if not jobs:
        typer.echo("No import jobs found.")
        return

    for job in jobs:
        typer.echo(
            f"{job.get('id')}  {str(job.get('status')):<10}  {job_progress_percent(job):>3}%  "
            f"{job.get('filename')}  ({job.get('created_at')})"
        )
