"""
Tests for eni/supabase_client.py.

The wrapper runs against the in-memory FakeSupabase so that every query it
builds is actually executed and inspected.
"""

from types import SimpleNamespace

import pytest

from eni.exceptions import PersistenceError
from eni.supabase_client import SupabaseClient, _extract_data


# ---------------------------------------------------------------------------
# Response normalization
# ---------------------------------------------------------------------------
def test_extract_data_handles_sdk_and_dict_responses():
    assert _extract_data(SimpleNamespace(data=[{"id": 1}], error=None)) == [{"id": 1}]
    assert _extract_data(SimpleNamespace(data={"id": 1}, error=None)) == [{"id": 1}]
    assert _extract_data(SimpleNamespace(data=None, error=None)) == []
    assert _extract_data({"data": [{"id": 2}], "status": 201}) == [{"id": 2}]
    assert _extract_data({"data": None}) == []


@pytest.mark.parametrize(
    "resp",
    [
        SimpleNamespace(data=None, error="boom"),
        {"data": None, "status": 500},
        {"data": [], "error": "duplicate key"},
    ],
)
def test_extract_data_raises_on_errors(resp):
    with pytest.raises(PersistenceError):
        _extract_data(resp)


# ---------------------------------------------------------------------------
# Notebooks
# ---------------------------------------------------------------------------
def test_notebook_lookup_is_scoped_to_user(client, fake_supabase):
    created = client.create_notebook("user-1", "Inbox")

    assert client.get_notebook(created["id"], "user-1")["name"] == "Inbox"
    assert client.get_notebook(created["id"], "user-2") is None
    assert client.find_notebook_by_name("user-1", "Inbox")["id"] == created["id"]
    assert client.find_notebook_by_name("user-2", "Inbox") is None


# ---------------------------------------------------------------------------
# Notes and attachments
# ---------------------------------------------------------------------------
def test_create_note_returns_assigned_id(client, fake_supabase):
    row = client.create_note({"title": "T", "content": "<p/>", "notebook_id": "nb"})

    assert row["id"] == "notes-1"
    assert fake_supabase.rows("notes")[0]["title"] == "T"


def test_create_attachments_is_one_bulk_insert(client, fake_supabase):
    rows = client.create_attachments(
        [{"note_id": "n", "filename": "a.png"}, {"note_id": "n", "filename": "b.png"}]
    )

    assert [r["filename"] for r in rows] == ["a.png", "b.png"]
    assert len(fake_supabase.calls_to("attachments", "insert")) == 1
    assert client.create_attachments([]) == []


def test_delete_note_removes_dependent_rows_first(client, fake_supabase):
    kept = client.create_note({"title": "Keep"})
    gone = client.create_note({"title": "Gone"})
    client.create_attachments([{"note_id": gone["id"], "filename": "a.png"}])
    client.link_note_tags(gone["id"], [client.upsert_tag("user-1", "Work")])

    client.delete_note(gone["id"])

    assert [n["id"] for n in fake_supabase.rows("notes")] == [kept["id"]]
    assert fake_supabase.rows("attachments") == []
    assert fake_supabase.rows("note_tags") == []
    assert len(fake_supabase.rows("tags")) == 1
    deleted = [t for t, op, _ in fake_supabase.calls if op == "delete"]
    assert deleted == ["note_tags", "attachments", "notes"]


def test_error_response_becomes_persistence_error(client, fake_supabase):
    fake_supabase.error_response_on("notes", "insert")
    with pytest.raises(PersistenceError):
        client.create_note({"title": "T"})


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------
def test_upsert_tag_is_idempotent_per_user(client, fake_supabase):
    first = client.upsert_tag("user-1", "Work")
    again = client.upsert_tag("user-1", "Work")
    other_user = client.upsert_tag("user-2", "Work")

    assert first == again
    assert other_user != first
    assert len(fake_supabase.rows("tags")) == 2


def test_upsert_tag_is_case_sensitive(client, fake_supabase):
    assert client.upsert_tag("user-1", "work") != client.upsert_tag("user-1", "Work")


def test_link_note_tags_does_not_duplicate_rows(client, fake_supabase):
    client.link_note_tags("n1", ["t1", "t2"])
    client.link_note_tags("n1", ["t1"])
    client.link_note_tags("n1", [])

    assert len(fake_supabase.rows("note_tags")) == 2
    assert len(fake_supabase.calls_to("note_tags", "upsert")) == 2


# ---------------------------------------------------------------------------
# Import jobs
# ---------------------------------------------------------------------------
def test_import_job_lifecycle(client):
    job = client.create_import_job("user-1", "export.enex")

    assert job["status"] == "pending"
    assert (job["total_notes"], job["imported"], job["failed"]) == (0, 0, 0)
    assert job["errors"] == []

    client.update_import_job(job["id"], {"status": "processing", "total_notes": 4})
    stored = client.get_import_job(job["id"])

    assert stored["status"] == "processing"
    assert stored["total_notes"] == 4
    assert client.get_import_job("missing") is None


def test_list_import_jobs_newest_first(client, fake_supabase):
    fake_supabase.rows("import_jobs").extend(
        [
            {"id": "a", "user_id": "user-1", "created_at": "2024-01-01T00:00:00+00:00"},
            {"id": "b", "user_id": "user-1", "created_at": "2024-03-01T00:00:00+00:00"},
            {"id": "c", "user_id": "user-2", "created_at": "2024-04-01T00:00:00+00:00"},
            {"id": "d", "user_id": "user-1", "created_at": "2024-02-01T00:00:00+00:00"},
        ]
    )

    assert [j["id"] for j in client.list_import_jobs("user-1")] == ["b", "d", "a"]
    assert [j["id"] for j in client.list_import_jobs("user-1", limit=1)] == ["b"]


# ---------------------------------------------------------------------------
# Dry-run and misconfiguration
# ---------------------------------------------------------------------------
def test_dry_run_never_touches_the_client(fake_supabase):
    client = SupabaseClient(fake_supabase, dry_run=True)

    job = client.create_import_job("user-1", "x.enex")
    note = client.create_note({"title": "T"})
    notebook = client.create_notebook("user-1", "Inbox")
    tag_id = client.upsert_tag("user-1", "Work")
    client.update_import_job(job["id"], {"status": "completed"})
    client.link_note_tags(note["id"], [tag_id])
    client.delete_note(note["id"])

    assert job["id"] == "dry-job-1"
    assert note["id"] == "dry-note-2"
    assert notebook["id"] == "dry-notebook-Inbox"
    assert tag_id == "dry-tag-Work"
    assert client.find_notebook_by_name("user-1", "Inbox") is None
    assert client.list_import_jobs("user-1") == []
    assert fake_supabase.calls == []


def test_missing_client_raises_runtime_error():
    with pytest.raises(RuntimeError, match="not configured"):
        SupabaseClient().create_note({"title": "T"})
