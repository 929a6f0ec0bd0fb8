"""
Configuration loading and validation.

A single Config instance is built at process start (see eni/cli/main.py) and
passed explicitly to the storage factory and the Supabase wrapper.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from eni.exceptions import ConfigError

STORAGE_BACKENDS = ("local", "supabase")


@dataclass
class Config:
    """Application configuration."""

    supabase_url: str = ""
    supabase_key: str = ""
    storage_backend: str = "local"
    storage_path: Path = field(default_factory=lambda: Path.cwd() / "storage")
    storage_base_url: str = "/api/attachments"
    storage_bucket: str = "attachments"
    batch_size: int = 10
    notebook_name: str = "Imported Notes"
    log_level: str = "INFO"

    def validate(self, require_supabase: bool = True) -> None:
        """Validate the configuration for the requested mode."""
        if require_supabase and (not self.supabase_url or not self.supabase_key):
            raise ConfigError(
                "Supabase credentials not found. Ensure SUPABASE_URL and SUPABASE_KEY "
                "are set in your environment or .env file."
            )
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ConfigError(
                f"Unknown storage backend: {self.storage_backend}. "
                f"Use one of: {', '.join(STORAGE_BACKENDS)}."
            )
        if self.storage_backend == "supabase" and (
            not self.supabase_url or not self.supabase_key
        ):
            raise ConfigError("The supabase storage backend requires Supabase credentials.")
        if self.batch_size < 1:
            raise ConfigError("batch_size must be at least 1.")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def load_config(
    storage_backend: Optional[str] = None,
    storage_path: Optional[str] = None,
    batch_size: Optional[int] = None,
    notebook_name: Optional[str] = None,
    **overrides: Any,
) -> Config:
    """Load config from .env / environment and apply explicit overrides."""
    load_dotenv()

    config = Config(
        supabase_url=os.getenv("SUPABASE_URL", ""),
        supabase_key=os.getenv("SUPABASE_KEY", ""),
        storage_backend=storage_backend or os.getenv("ENI_STORAGE_BACKEND", "local"),
        storage_path=Path(storage_path)
        if storage_path
        else Path(os.getenv("ENI_STORAGE_PATH", str(Path.cwd() / "storage"))),
        storage_base_url=os.getenv("ENI_STORAGE_BASE_URL", "/api/attachments"),
        storage_bucket=os.getenv("ENI_STORAGE_BUCKET", "attachments"),
        batch_size=batch_size if batch_size is not None else _int_env("ENI_BATCH_SIZE", 10),
        notebook_name=notebook_name or os.getenv("ENI_NOTEBOOK_NAME", "Imported Notes"),
        log_level=os.getenv("ENI_LOG_LEVEL", "INFO"),
    )

    for key, value in overrides.items():
        if not hasattr(config, key):
            raise ConfigError(f"Unknown configuration key: {key}")
        setattr(config, key, value)

    return config
