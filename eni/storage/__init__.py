"""
Blob storage backends for extracted attachments.

The pipeline depends only on StorageServiceInterface (eni/types.py). Pick a
backend explicitly with create_storage_service(config); nothing in the
package builds a storage client implicitly.
"""

from typing import Any, Optional

from eni.config import Config
from eni.exceptions import ConfigError
from eni.types import StorageServiceInterface

from .local import LocalStorageService
from .memory import MemoryStorageService
from .supabase_storage import SupabaseStorageService


def create_storage_service(config: Config, sdk_client: Optional[Any] = None) -> StorageServiceInterface:
    """
    Build the storage backend named by config.storage_backend.

    `sdk_client` is the Supabase SDK client to reuse for the supabase backend;
    when omitted one is created from the config credentials.
    """
    if config.storage_backend == "local":
        return LocalStorageService(config.storage_path, config.storage_base_url)

    if config.storage_backend == "supabase":
        if sdk_client is None:
            from supabase import create_client

            sdk_client = create_client(config.supabase_url, config.supabase_key)
        return SupabaseStorageService(sdk_client, bucket=config.storage_bucket)

    raise ConfigError(f"Unknown storage backend: {config.storage_backend}")


__all__ = [
    "LocalStorageService",
    "MemoryStorageService",
    "SupabaseStorageService",
    "create_storage_service",
]
