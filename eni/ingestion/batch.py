"""
Batch controller: several uploaded files, imported one after another.

Validation happens before any pipeline stage runs. A batch that breaks the
file count, per-file size, combined size, or extension rules is rejected as a
whole with ImportValidationError.

Files are imported strictly sequentially so that two files targeting the
same notebook or tags never race each other. A file that fails is recorded in
the batch errors and the batch moves on.
"""

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import PurePath
from typing import Callable, List, Optional, Sequence, Union

from eni.exceptions import ImportValidationError
from eni.ingestion.orchestrator import ImportOptions, import_document, import_export
from eni.parsers.text import parse_text_file
from eni.supabase_client import SupabaseClient
from eni.types import BatchResult, ImportResult, StorageServiceInterface

logger = logging.getLogger(__name__)

MAX_FILES = 5
MAX_FILE_SIZE = 100 * 1024 * 1024
MAX_TOTAL_SIZE = 200 * 1024 * 1024
SUPPORTED_EXTENSIONS = (".enex", ".txt")


@dataclass(frozen=True)
class UploadedFile:
    """One file of a batch submission."""

    filename: str
    content: Union[str, bytes]

    @property
    def size(self) -> int:
        if isinstance(self.content, bytes):
            return len(self.content)
        return len(self.content.encode("utf-8"))

    @property
    def extension(self) -> str:
        return PurePath(self.filename).suffix.lower()


def validate_batch(files: Sequence[UploadedFile]) -> None:
    """
    Reject a batch that violates the upload limits.

    Raises
    ------
    ImportValidationError
        On an empty batch, too many files, an unsupported extension, an
        oversized file, or an oversized batch.
    """
    if not files:
        raise ImportValidationError("No files provided")

    if len(files) > MAX_FILES:
        raise ImportValidationError(f"Too many files: {len(files)} (maximum is {MAX_FILES})")

    total = 0
    for f in files:
        if f.extension not in SUPPORTED_EXTENSIONS:
            raise ImportValidationError(
                f"{f.filename}: unsupported file type. "
                f"Supported formats: {', '.join(SUPPORTED_EXTENSIONS)}"
            )
        if f.size > MAX_FILE_SIZE:
            raise ImportValidationError(f"{f.filename}: file too large (maximum is 100MB)")
        total += f.size

    if total > MAX_TOTAL_SIZE:
        raise ImportValidationError("Batch too large (maximum combined size is 200MB)")


def import_file(
    upload: UploadedFile,
    client: SupabaseClient,
    storage: StorageServiceInterface,
    options: ImportOptions,
) -> ImportResult:
    """Route one file to the parser for its extension and import it."""
    if upload.extension == ".txt":
        document = parse_text_file(upload.filename, upload.content)
        text_options = dataclasses.replace(options, import_source="text")
        return import_document(document, client, storage, text_options)
    return import_export(upload.content, client, storage, options)


def import_batch(
    files: Sequence[UploadedFile],
    client: SupabaseClient,
    storage: StorageServiceInterface,
    user_id: str,
    options_factory: Optional[Callable[[UploadedFile], ImportOptions]] = None,
) -> BatchResult:
    """
    Validate and import every file, in order.

    Parameters
    ----------
    files : Sequence[UploadedFile]
        The submission.
    client, storage
        Collaborators passed through to the orchestrator.
    user_id : str
        Owner of the imported notes.
    options_factory : callable | None
        Builds the ImportOptions for each file. Defaults to the user id and
        the file name with every other option at its default.
    """
    validate_batch(files)

    if options_factory is None:

        def options_factory(upload: UploadedFile) -> ImportOptions:
            return ImportOptions(user_id=user_id, filename=upload.filename)

    results: List[ImportResult] = []
    errors: List[str] = []

    for upload in files:
        try:
            result = import_file(upload, client, storage, options_factory(upload))
        except Exception as e:
            # Non-fatal at batch level: record the file and keep going.
            logger.error("Import of %s failed: %s", upload.filename, e)
            errors.append(f"{upload.filename}: {e}")
            continue

        results.append(result)
        errors.extend(f"{upload.filename}: {err}" for err in result["errors"])

    return {
        "total_notes_imported": sum(r["imported"] for r in results),
        "total_attachments_imported": sum(r["attachments_imported"] for r in results),
        "files_processed": len(results),
        "errors": errors,
        "results": results,
    }
