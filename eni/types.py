"""
eni/types.py

Centralized type definitions for the Evernote import pipeline.

This module defines the TypedDicts and Protocols shared by the parsers, the
resource extractor, the orchestrator, the Supabase wrapper, the storage
backends, and the test doubles. Keeping these types in one place ensures:

    • A single source of truth for persisted row shapes
    • Clear contracts between the pipeline and its external collaborators
    • Easy mocking and dependency injection in tests

The parsed export itself (ExportDocument, ExportedNote, ...) lives in
eni/models.py as frozen dataclasses, because it is immutable once parsed.
"""

from typing import Any, Dict, List, Literal, Optional, Protocol, TypedDict

# ---------------------------------------------------------------------------
# ImportStatus
# ---------------------------------------------------------------------------
# The ImportJob state machine:
#
#     pending → processing → completed | failed
#
# A job left in "processing" after its process died is orphaned; callers
# detect that by staleness, the pipeline never resolves it.
# ---------------------------------------------------------------------------
ImportStatus = Literal["pending", "processing", "completed", "failed"]


# ---------------------------------------------------------------------------
# ResourceLink / ResourceHashMap
# ---------------------------------------------------------------------------
# One entry of the per-note hash map built by the resource extractor and
# consumed by the ENML converter to resolve <en-media hash="..."> references.
# ---------------------------------------------------------------------------
class ResourceLink(TypedDict, total=False):
    url: str
    mime_type: str
    filename: Optional[str]
    width: Optional[int]
    height: Optional[int]


ResourceHashMap = Dict[str, ResourceLink]


# ---------------------------------------------------------------------------
# NoteRecord
# ---------------------------------------------------------------------------
# The note row written by the orchestrator.
#
# total=False allows partial construction (the backend assigns "id").
# ---------------------------------------------------------------------------
class NoteRecord(TypedDict, total=False):
    id: str
    title: str
    content: str
    content_plaintext: str
    original_enml: str
    notebook_id: str

    # Optional note-attribute metadata
    source_url: Optional[str]
    author: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]
    altitude: Optional[float]

    # Source timestamps (ISO 8601, UTC)
    evernote_created: Optional[str]
    evernote_updated: Optional[str]

    # Import provenance
    imported_at: str
    import_source: str


# ---------------------------------------------------------------------------
# AttachmentRecord
# ---------------------------------------------------------------------------
# One row per ExtractedResource, linked to the note that owns it.
# ---------------------------------------------------------------------------
class AttachmentRecord(TypedDict, total=False):
    id: str
    note_id: str
    filename: str
    original_name: str
    mime_type: str
    size: int
    storage_key: str
    hash: str
    width: Optional[int]
    height: Optional[int]


# ---------------------------------------------------------------------------
# ImportJobRecord
# ---------------------------------------------------------------------------
# Persisted progress record for one file-level import. The orchestrator
# rewrites the counters after every note, so this row is always a live
# progress snapshot.
# ---------------------------------------------------------------------------
class ImportJobRecord(TypedDict, total=False):
    id: str
    user_id: str
    filename: str
    status: ImportStatus
    total_notes: int
    imported: int
    failed: int
    errors: List[str]
    started_at: Optional[str]
    completed_at: Optional[str]
    created_at: Optional[str]


# ---------------------------------------------------------------------------
# ImportResult
# ---------------------------------------------------------------------------
# The per-file result returned by the orchestrator.
# ---------------------------------------------------------------------------
class ImportResult(TypedDict):
    job_id: str
    status: ImportStatus
    total_notes: int
    imported: int
    failed: int
    errors: List[str]
    notebook_id: str
    attachments_imported: int


# ---------------------------------------------------------------------------
# BatchResult
# ---------------------------------------------------------------------------
# Aggregate over several files, produced by eni/ingestion/batch.py.
# ---------------------------------------------------------------------------
class BatchResult(TypedDict):
    total_notes_imported: int
    total_attachments_imported: int
    files_processed: int
    errors: List[str]
    results: List[ImportResult]


# ---------------------------------------------------------------------------
# StorageFile / StorageListResult
# ---------------------------------------------------------------------------
class StorageFile(TypedDict):
    key: str
    filename: str
    mime_type: str
    size: int


class StorageListResult(TypedDict):
    files: List[StorageFile]
    cursor: Optional[str]
    has_more: bool


# ---------------------------------------------------------------------------
# StorageServiceInterface
# ---------------------------------------------------------------------------
# The blob-store collaborator. The pipeline only relies on upload, get_url,
# and list; the remaining methods are part of every backend's surface.
#
# This Protocol is structural: LocalStorageService, SupabaseStorageService,
# and the in-memory test double all satisfy it without inheriting from it.
# ---------------------------------------------------------------------------
class StorageServiceInterface(Protocol):
    def upload(
        self,
        data: bytes,
        *,
        key: Optional[str] = None,
        mime_type: str = "application/octet-stream",
        filename: Optional[str] = None,
    ) -> StorageFile: ...

    def get(self, key: str) -> Optional[bytes]: ...

    def get_url(self, key: str) -> str: ...

    def delete(self, key: str) -> bool: ...

    def exists(self, key: str) -> bool: ...

    def list(
        self,
        prefix: str = "",
        limit: int = 100,
        cursor: Optional[str] = None,
    ) -> StorageListResult: ...


# ---------------------------------------------------------------------------
# SupabaseClientInterface
# ---------------------------------------------------------------------------
# Subset of the Supabase Python SDK used by eni/supabase_client.py:
#
#     client.table("notes").insert({...}).execute()
#     client.table("tags").upsert({...}, on_conflict="user_id,name").execute()
#     client.table("notebooks").select("*").eq("user_id", uid).limit(1).execute()
#
# The real SDK, the in-memory FakeSupabase used in tests, and any other
# object exposing table(name) are accepted.
# ---------------------------------------------------------------------------
class SupabaseClientInterface(Protocol):
    def table(self, name: str) -> Any:
        """
        Return a query builder for the given table.
        The builder must support select/eq/order/limit/insert/update/upsert/delete
        chaining and a terminal .execute().
        """
        ...
