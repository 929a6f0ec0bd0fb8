"""
High-level import orchestrator for Evernote exports.

This module defines the canonical import pipeline for moving one exported
file into Supabase. It is intentionally explicit and linear so that:

    • tests can assert on sequencing and counters deterministically
    • contributors can reason about the pipeline without hidden behavior
    • dry-run mode can simulate the import without touching external systems

Pipeline for one file:

    1. create the import job (pending)
    2. parse the export            → document-fatal on ParseError
    3. record total note count     → job becomes processing
    4. resolve the notebook        → document-fatal on failure
    5. for each note, in document order and in fixed-size batches:
           extract resources → convert ENML → create note
           → create attachments → upsert/link tags
       A failing note is recorded and the loop continues.
       Job counters are persisted after every note.
    6. finalize: failed only if every note failed, otherwise completed

The orchestrator does *not* perform:
    • persistence logic (delegated to SupabaseClient)
    • blob transport (delegated to the storage backend)
    • markup conversion (delegated to eni.parsers.enml)

Progress is reported as immutable ImportProgress snapshots through an
optional callback. The callback has no control-flow significance.
"""

import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from eni.exceptions import ParseError
from eni.ingestion.notebook_resolution import DEFAULT_NOTEBOOK_NAME, resolve_notebook
from eni.ingestion.resource_extraction import extract_resources
from eni.ingestion.tag_resolution import resolve_tag_ids
from eni.models import ExportDocument, ExportedNote
from eni.parsers.enex import parse_enex, parse_evernote_date
from eni.parsers.enml import ConversionOptions, convert_enml_to_html, extract_plain_text
from eni.supabase_client import SupabaseClient
from eni.types import (
    AttachmentRecord,
    ImportJobRecord,
    ImportResult,
    ImportStatus,
    NoteRecord,
    StorageServiceInterface,
)

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10


# ============================================================================
# OPTIONS AND PROGRESS
# ============================================================================
@dataclass(frozen=True)
class ImportProgress:
    """Immutable progress snapshot handed to the progress callback."""

    status: ImportStatus
    total_notes: int
    imported: int
    failed: int
    current_note: Optional[str] = None
    errors: Tuple[str, ...] = ()


ProgressCallback = Callable[[ImportProgress], None]


@dataclass
class ImportOptions:
    """Per-file import options."""

    user_id: str
    filename: str
    notebook_id: Optional[str] = None
    notebook_name: str = DEFAULT_NOTEBOOK_NAME
    on_progress: Optional[ProgressCallback] = None
    batch_size: int = DEFAULT_BATCH_SIZE
    import_source: str = "enex"
    dedupe_resources: bool = False
    conversion: ConversionOptions = field(default_factory=ConversionOptions)


# ============================================================================
# IMPORT REPORT - RUNNING COUNTERS FOR ONE JOB
# ============================================================================
class ImportReport:
    """
    Running counters for one import job.

    The orchestrator is the only writer. Consumers never see this object:
    they get ImportProgress snapshots and the final ImportResult.
    """

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        self.status: ImportStatus = "pending"
        self.total_notes = 0
        self.imported = 0
        self.failed = 0
        self.attachments_imported = 0
        self.current_note: Optional[str] = None
        self.notebook_id = ""

        # Note failures and resource warnings, in the order they happened
        self.errors: List[str] = []

    def snapshot(self) -> ImportProgress:
        return ImportProgress(
            status=self.status,
            total_notes=self.total_notes,
            imported=self.imported,
            failed=self.failed,
            current_note=self.current_note,
            errors=tuple(self.errors),
        )

    def counters(self) -> Dict[str, Any]:
        """Fields persisted to the job row after every note."""
        return {
            "imported": self.imported,
            "failed": self.failed,
            "errors": list(self.errors),
        }

    def to_result(self) -> ImportResult:
        return {
            "job_id": self.job_id,
            "status": self.status,
            "total_notes": self.total_notes,
            "imported": self.imported,
            "failed": self.failed,
            "errors": list(self.errors),
            "notebook_id": self.notebook_id,
            "attachments_imported": self.attachments_imported,
        }


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _note_failure(title: str, error: Any) -> str:
    return f'Failed to import "{title}": {error}'


# ============================================================================
# PUBLIC ENTRY POINTS
# ============================================================================
def import_export(
    content: Any,
    client: SupabaseClient,
    storage: StorageServiceInterface,
    options: ImportOptions,
) -> ImportResult:
    """
    Import one .enex export (text or bytes).

    Never raises for per-note problems. A parse failure or a notebook that
    cannot be resolved marks the job failed and is returned as a failed
    ImportResult.

    Parameters
    ----------
    content : str | bytes
        The raw export.
    client : SupabaseClient
        Persistence wrapper (real or dry-run).
    storage : StorageServiceInterface
        Blob store for attachments.
    options : ImportOptions
        User, filename, destination notebook, and tuning knobs.
    """
    return _run(lambda: parse_enex(content), client, storage, options)


def import_document(
    document: ExportDocument,
    client: SupabaseClient,
    storage: StorageServiceInterface,
    options: ImportOptions,
) -> ImportResult:
    """Import an already-parsed document (e.g. from parse_text_file)."""
    return _run(lambda: document, client, storage, options)


# ============================================================================
# MAIN PIPELINE
# ============================================================================
def _run(
    parse: Callable[[], ExportDocument],
    client: SupabaseClient,
    storage: StorageServiceInterface,
    options: ImportOptions,
) -> ImportResult:
    batch_size = max(1, options.batch_size)

    # ------------------------------------------------------------
    # 1. JOB CREATION
    # ------------------------------------------------------------
    job = client.create_import_job(options.user_id, options.filename)
    report = ImportReport(job["id"])
    _emit(options, report)

    # ------------------------------------------------------------
    # 2. PARSE - THE ONE STAGE WHERE A SINGLE ERROR ABORTS EVERYTHING
    # ------------------------------------------------------------
    report.status = "processing"
    _emit(options, report)

    try:
        document = parse()
    except ParseError as e:
        logger.error("Import job %s: could not parse %s: %s", report.job_id, options.filename, e)
        return _fail_job(client, options, report, str(e))

    # Notes dropped by the parser count as failed notes of this job.
    for rejected in document.rejected:
        report.failed += 1
        report.errors.append(_note_failure(rejected.title, rejected.reason))
    for warning in document.warnings:
        report.errors.append(warning)

    report.total_notes = len(document.notes) + len(document.rejected)

    client.update_import_job(
        report.job_id,
        {
            "status": "processing",
            "total_notes": report.total_notes,
            "started_at": _now_iso(),
            **report.counters(),
        },
    )
    logger.info(
        "Import job %s: processing %d notes from %s",
        report.job_id,
        report.total_notes,
        options.filename,
    )
    _emit(options, report)

    # ------------------------------------------------------------
    # 3. EMPTY EXPORT - SUCCESS WITH ZERO COUNTS
    # ------------------------------------------------------------
    if not document.notes:
        report.notebook_id = options.notebook_id or ""
        return _finish_job(client, options, report)

    # ------------------------------------------------------------
    # 4. NOTEBOOK RESOLUTION
    # ------------------------------------------------------------
    try:
        notebook = resolve_notebook(
            client,
            options.user_id,
            notebook_id=options.notebook_id,
            name=options.notebook_name,
        )
    except Exception as e:
        logger.error("Import job %s: notebook resolution failed: %s", report.job_id, e)
        return _fail_job(client, options, report, f"Notebook resolution failed: {e}")

    report.notebook_id = notebook["id"]

    # ------------------------------------------------------------
    # 5. NOTE LOOP - PER-NOTE FAILURE ISOLATION
    # ------------------------------------------------------------
    # Batches only bound the slice of notes held in flight; the order and
    # the result are the same for every batch size.
    tag_cache: Dict[str, str] = {}

    for start in range(0, len(document.notes), batch_size):
        for note in document.notes[start : start + batch_size]:
            report.current_note = note.title
            _emit(options, report)

            try:
                attachments, warnings = _import_note(
                    note, client, storage, options, report.notebook_id, tag_cache
                )
            except Exception as e:
                # Non-fatal: record the failure and continue with the next note.
                report.failed += 1
                message = _note_failure(note.title, e)
                report.errors.append(message)
                logger.error("Import job %s: %s", report.job_id, message)
            else:
                report.imported += 1
                report.attachments_imported += attachments
                report.errors.extend(warnings)

            client.update_import_job(report.job_id, report.counters())
            report.current_note = None
            _emit(options, report)

    # ------------------------------------------------------------
    # 6. FINALIZE
    # ------------------------------------------------------------
    return _finish_job(client, options, report)


def _import_note(
    note: ExportedNote,
    client: SupabaseClient,
    storage: StorageServiceInterface,
    options: ImportOptions,
    notebook_id: str,
    tag_cache: Dict[str, str],
) -> Tuple[int, List[str]]:
    """
    Import one note. Returns (attachments stored, resource warnings).

    Any exception propagates to the note loop, which records it. A failure
    after the note row is written deletes that row and its dependents first.
    """
    # Resources are stored before the note row exists, under a temporary
    # id; the attachment rows are linked to the real note id below.
    temp_note_id = f"import_{uuid.uuid4().hex[:12]}"

    extraction = extract_resources(
        note.resources,
        storage,
        user_id=options.user_id,
        note_id=temp_note_id,
        dedupe=options.dedupe_resources,
    )
    warnings = [
        f'Resource {err["index"]} of "{note.title}" was skipped: {err["error"]}'
        for err in extraction.errors
    ]

    html = convert_enml_to_html(note.content, extraction.hash_map, options.conversion)
    plaintext = extract_plain_text(note.content)

    created = client.create_note(
        _build_note_record(note, notebook_id, html, plaintext, options.import_source)
    )

    # Everything after the note row is undone if a later step fails.
    try:
        attachments: List[AttachmentRecord] = [
            {
                "note_id": created["id"],
                "filename": r.filename,
                "original_name": r.filename,
                "mime_type": r.mime_type,
                "size": r.size,
                "storage_key": r.storage_key,
                "hash": r.hash,
                "width": r.width,
                "height": r.height,
            }
            for r in extraction.extracted
        ]
        client.create_attachments(attachments)

        tag_ids = resolve_tag_ids(client, options.user_id, note.tags, tag_cache)
        client.link_note_tags(created["id"], tag_ids)
    except Exception:
        _discard_note(client, created["id"])
        raise

    return len(extraction.extracted), warnings


def _discard_note(client: SupabaseClient, note_id: str) -> None:
    try:
        client.delete_note(note_id)
    except Exception as e:
        logger.warning("Could not remove partially imported note %s: %s", note_id, e)


def _build_note_record(
    note: ExportedNote,
    notebook_id: str,
    html: str,
    plaintext: str,
    import_source: str,
) -> NoteRecord:
    attrs = note.attributes
    created = parse_evernote_date(note.created)
    updated = parse_evernote_date(note.updated)

    return {
        "title": note.title,
        "content": html,
        "content_plaintext": plaintext,
        "original_enml": note.content,
        "notebook_id": notebook_id,
        "source_url": attrs.source_url if attrs else None,
        "author": attrs.author if attrs else None,
        "latitude": attrs.latitude if attrs else None,
        "longitude": attrs.longitude if attrs else None,
        "altitude": attrs.altitude if attrs else None,
        "evernote_created": created.isoformat() if created else None,
        "evernote_updated": updated.isoformat() if updated else None,
        "imported_at": _now_iso(),
        "import_source": import_source,
    }


# ============================================================================
# JOB FINALIZATION
# ============================================================================
def _finish_job(
    client: SupabaseClient, options: ImportOptions, report: ImportReport
) -> ImportResult:
    # Partial success is success; only an import where every note failed
    # is a failed job. An empty export is completed.
    if report.total_notes > 0 and report.failed == report.total_notes:
        report.status = "failed"
    else:
        report.status = "completed"

    client.update_import_job(
        report.job_id,
        {"status": report.status, "completed_at": _now_iso(), **report.counters()},
    )
    logger.info(
        "Import job %s %s: %d imported, %d failed",
        report.job_id,
        report.status,
        report.imported,
        report.failed,
    )
    _emit(options, report)
    return report.to_result()


def _fail_job(
    client: SupabaseClient, options: ImportOptions, report: ImportReport, message: str
) -> ImportResult:
    report.status = "failed"
    report.current_note = None
    report.notebook_id = ""
    report.errors = [message]

    client.update_import_job(
        report.job_id,
        {"status": "failed", "completed_at": _now_iso(), **report.counters()},
    )
    _emit(options, report)
    return report.to_result()


def _emit(options: ImportOptions, report: ImportReport) -> None:
    if options.on_progress is None:
        return
    # A broken callback must not abort the import.
    try:
        options.on_progress(report.snapshot())
    except Exception as e:
        logger.warning("Progress callback failed: %s", e)


# ============================================================================
# JOB QUERIES
# ============================================================================
def get_import_job_status(client: SupabaseClient, job_id: str) -> Optional[ImportJobRecord]:
    """Return the job row, or None if it does not exist."""
    return client.get_import_job(job_id)


def list_import_jobs(
    client: SupabaseClient, user_id: str, limit: int = 10
) -> List[ImportJobRecord]:
    """Return the user's most recent jobs, newest first."""
    return client.list_import_jobs(user_id, limit=limit)


def job_progress_percent(job: ImportJobRecord) -> int:
    """
    Processed notes (imported + failed) as a rounded percentage of the total.

    A job with no known total reports 0.
    """
    total = job.get("total_notes") or 0
    if total <= 0:
        return 0
    processed = (job.get("imported") or 0) + (job.get("failed") or 0)
    return int(math.floor(processed * 100 / total + 0.5))
