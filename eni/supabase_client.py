"""
Supabase persistence wrapper for the import pipeline.

This wrapper provides a stable, typed interface over a Supabase-compatible
client. The orchestrator only talks to this class; it never builds queries
itself. Supported operations:

    • notebooks   - lookup by id / name (scoped to user), create
    • notes       - create, delete (with dependent rows)
    • attachments - bulk create
    • tags        - upsert by (user_id, name), link to notes
    • import_jobs - create, update, get, list

Two modes:

    • real mode    - forwards to the injected SDK client (or any object with
                     the same table(...) builder chain)
    • dry-run mode - deterministic fake identifiers, no writes, no client

Tag creation relies on a unique (user_id, name) constraint and a single
upsert with on_conflict, so concurrent imports for the same user converge on
one row instead of racing a read-then-write.
"""

import itertools
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, TypeVar, cast

from eni.config import Config
from eni.exceptions import PersistenceError
from eni.types import AttachmentRecord, ImportJobRecord, NoteRecord, SupabaseClientInterface

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Dict[str, Any])

# ---------------------------------------------------------------------------
# Helper: normalize Supabase responses
# ---------------------------------------------------------------------------


def _extract_data(resp: Any) -> List[T]:
    """
    Normalize Supabase responses across:
        • real SDK objects (APIResponse with .data)
        • dict-style responses from test doubles

    Always returns a list of row dictionaries.
    Raises PersistenceError on any error status or error attribute.
    """

    # Dict-style response (test doubles)
    if isinstance(resp, dict):
        status = resp.get("status", 200)
        if status >= 400 or resp.get("error"):
            raise PersistenceError(f"Supabase error: {resp.get('error') or resp}")
        data = resp.get("data", [])
        if data is None:
            return []
        return cast(List[T], data if isinstance(data, list) else [data])

    # SDK-style response
    error = getattr(resp, "error", None)
    if error:
        raise PersistenceError(f"Supabase error: {error}")

    data = getattr(resp, "data", None)
    if data is None:
        return []

    if isinstance(data, list):
        return cast(List[T], data)

    return cast(List[T], [data])


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Main wrapper class
# ---------------------------------------------------------------------------


class SupabaseClient:
    """
    A minimal, dependency-injected wrapper around a Supabase-compatible client.

    The class is intentionally thin: each method issues one query (tag upsert
    may issue a follow-up select) and normalizes the response.
    """

    def __init__(
        self, client: Optional[SupabaseClientInterface] = None, dry_run: bool = False
    ) -> None:
        """
        Parameters
        ----------
        client : SupabaseClientInterface | None
            A Supabase-compatible client (real SDK or test double).
        dry_run : bool
            If True, no client is used and every write returns a
            deterministic fake row.
        """
        self.dry_run = dry_run
        self.client = None if dry_run else client
        self._dry_ids = itertools.count(1)

    @classmethod
    def from_config(cls, config: Config) -> "SupabaseClient":
        """Create the SDK client from configured credentials and wrap it."""
        from supabase import create_client

        config.validate(require_supabase=True)
        return cls(create_client(config.supabase_url, config.supabase_key))

    # -----------------------------------------------------------------------
    # Internal helper: enforce presence of a real Supabase client
    # -----------------------------------------------------------------------

    def _require_client(self) -> Any:
        if self.client is None:
            raise RuntimeError("Supabase client is not configured")
        return self.client

    def _dry_id(self, prefix: str) -> str:
        return f"dry-{prefix}-{next(self._dry_ids)}"

    # -----------------------------------------------------------------------
    # Notebooks
    # -----------------------------------------------------------------------

    def get_notebook(self, notebook_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        """Return the notebook with this id if it belongs to the user."""
        if self.dry_run:
            return None

        client = self._require_client()
        resp = (
            client.table("notebooks")
            .select("*")
            .eq("id", notebook_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        rows: List[Dict[str, Any]] = _extract_data(resp)
        return rows[0] if rows else None

    def find_notebook_by_name(self, user_id: str, name: str) -> Optional[Dict[str, Any]]:
        """Return the user's notebook with exactly this name, if any."""
        if self.dry_run:
            return None

        client = self._require_client()
        resp = (
            client.table("notebooks")
            .select("*")
            .eq("user_id", user_id)
            .eq("name", name)
            .limit(1)
            .execute()
        )
        rows: List[Dict[str, Any]] = _extract_data(resp)
        return rows[0] if rows else None

    def create_notebook(self, user_id: str, name: str) -> Dict[str, Any]:
        """Insert a notebook row and return it."""
        if self.dry_run:
            return {"id": f"dry-notebook-{name}", "user_id": user_id, "name": name}

        client = self._require_client()
        resp = client.table("notebooks").insert({"user_id": user_id, "name": name}).execute()

        rows: List[Dict[str, Any]] = _extract_data(resp)
        if not rows:
            raise PersistenceError(f"Notebook insert returned no rows for name={name!r}")
        return rows[0]

    # -----------------------------------------------------------------------
    # Notes and attachments
    # -----------------------------------------------------------------------

    def create_note(self, record: NoteRecord) -> NoteRecord:
        """Insert a note row and return it (including its assigned id)."""
        if self.dry_run:
            return cast(NoteRecord, {**record, "id": self._dry_id("note")})

        client = self._require_client()
        resp = client.table("notes").insert(dict(record)).execute()

        rows = cast(List[NoteRecord], _extract_data(resp))
        if not rows:
            raise PersistenceError(f"Note insert returned no rows for title={record.get('title')!r}")
        return rows[0]

    def create_attachments(self, records: List[AttachmentRecord]) -> List[AttachmentRecord]:
        """Bulk-insert attachment rows. Returns the inserted rows."""
        if not records:
            return []

        if self.dry_run:
            return [cast(AttachmentRecord, {**r, "id": self._dry_id("attachment")}) for r in records]

        client = self._require_client()
        resp = client.table("attachments").insert([dict(r) for r in records]).execute()
        return cast(List[AttachmentRecord], _extract_data(resp))

    def delete_note(self, note_id: str) -> None:
        """
        Delete a note together with its attachment rows and tag links.

        Used to roll back a note whose import failed after the note row was
        written. Dependent rows go first so no foreign key is left dangling.
        """
        if self.dry_run:
            return

        client = self._require_client()
        for table in ("note_tags", "attachments"):
            _extract_data(client.table(table).delete().eq("note_id", note_id).execute())
        _extract_data(client.table("notes").delete().eq("id", note_id).execute())

    # -----------------------------------------------------------------------
    # Tags
    # -----------------------------------------------------------------------

    def upsert_tag(self, user_id: str, name: str) -> str:
        """
        Get-or-create the user's tag with this name and return its id.

        Relies on a unique (user_id, name) constraint: the upsert either
        inserts or merges into the existing row. If the backend returns no
        representation, the row is fetched.
        """
        if self.dry_run:
            return f"dry-tag-{name}"

        client = self._require_client()
        resp = (
            client.table("tags")
            .upsert({"user_id": user_id, "name": name}, on_conflict="user_id,name")
            .execute()
        )
        rows: List[Dict[str, Any]] = _extract_data(resp)

        if not rows:
            resp = (
                client.table("tags")
                .select("id")
                .eq("user_id", user_id)
                .eq("name", name)
                .limit(1)
                .execute()
            )
            rows = _extract_data(resp)

        if not rows:
            raise PersistenceError(f"Tag upsert returned no rows for name={name!r}")
        return rows[0]["id"]

    def link_note_tags(self, note_id: str, tag_ids: List[str]) -> None:
        """
        Create note-tag join rows. Idempotent on (note_id, tag_id).
        """
        if not tag_ids or self.dry_run:
            return

        payload = [{"note_id": note_id, "tag_id": tid} for tid in tag_ids]
        client = self._require_client()
        resp = client.table("note_tags").upsert(payload, on_conflict="note_id,tag_id").execute()

        # Only failures matter here.
        _extract_data(resp)

    # -----------------------------------------------------------------------
    # Import jobs
    # -----------------------------------------------------------------------

    def create_import_job(self, user_id: str, filename: str) -> ImportJobRecord:
        """Insert a pending import job and return it."""
        record: ImportJobRecord = {
            "user_id": user_id,
            "filename": filename,
            "status": "pending",
            "total_notes": 0,
            "imported": 0,
            "failed": 0,
            "errors": [],
            "created_at": _now_iso(),
        }

        if self.dry_run:
            return cast(ImportJobRecord, {**record, "id": self._dry_id("job")})

        client = self._require_client()
        resp = client.table("import_jobs").insert(dict(record)).execute()

        rows = cast(List[ImportJobRecord], _extract_data(resp))
        if not rows:
            raise PersistenceError(f"Import job insert returned no rows for {filename!r}")
        return rows[0]

    def update_import_job(self, job_id: str, fields: Dict[str, Any]) -> None:
        """Apply a partial update to an import job row."""
        if self.dry_run:
            return

        client = self._require_client()
        resp = client.table("import_jobs").update(fields).eq("id", job_id).execute()
        _extract_data(resp)

    def get_import_job(self, job_id: str) -> Optional[ImportJobRecord]:
        if self.dry_run:
            return None

        client = self._require_client()
        resp = client.table("import_jobs").select("*").eq("id", job_id).limit(1).execute()
        rows = cast(List[ImportJobRecord], _extract_data(resp))
        return rows[0] if rows else None

    def list_import_jobs(self, user_id: str, limit: int = 10) -> List[ImportJobRecord]:
        """Most recent jobs first."""
        if self.dry_run:
            return []

        client = self._require_client()
        resp = (
            client.table("import_jobs")
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return cast(List[ImportJobRecord], _extract_data(resp))
