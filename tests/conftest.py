"""
Shared pytest configuration for the import pipeline test suite.

This file centralizes reusable testing utilities so that:
    • pipeline tests run against a deterministic in-memory Supabase fake
    • attachment storage is in memory and inspectable
    • .enex fixtures load consistently
    • CLI tests share one Typer CliRunner

All helpers here are intentionally simple and deterministic.
"""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from eni.ingestion.orchestrator import ImportOptions
from eni.storage import MemoryStorageService
from eni.supabase_client import SupabaseClient
from tests.fixtures.fake_supabase import FakeSupabase

# ============================================================================
# FIXTURE DIRECTORY
# ============================================================================
FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ============================================================================
# SHARED TEST INFRASTRUCTURE
# ============================================================================


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provides a fresh Typer CliRunner instance for CLI tests."""
    return CliRunner()


@pytest.fixture
def load_text_fixture():
    """Load a raw text fixture from tests/fixtures/."""

    def _loader(name: str) -> str:
        path = FIXTURES_DIR / name
        return path.read_text(encoding="utf-8")

    return _loader


@pytest.fixture
def sample_enex_path() -> Path:
    return FIXTURES_DIR / "sample.enex"


# ============================================================================
# DETERMINISTIC COLLABORATORS
# ============================================================================


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    """In-memory Supabase SDK stand-in with fault injection."""
    return FakeSupabase()


@pytest.fixture
def client(fake_supabase: FakeSupabase) -> SupabaseClient:
    """The real SupabaseClient wrapper over the in-memory fake."""
    return SupabaseClient(fake_supabase)


@pytest.fixture
def storage() -> MemoryStorageService:
    return MemoryStorageService(base_url="https://store")


@pytest.fixture
def make_options():
    """Build ImportOptions for user "user-1" with per-test overrides."""

    def _make(**overrides) -> ImportOptions:
        values = {"user_id": "user-1", "filename": "export.enex"}
        values.update(overrides)
        return ImportOptions(**values)

    return _make
