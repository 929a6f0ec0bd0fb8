"""
Supabase Storage backend.

Uses a Supabase Storage bucket (default "attachments") through the same
Supabase SDK client that the persistence wrapper uses:

    client.storage.from_(bucket).upload(path, data, file_options)

Objects are written with upsert enabled and a one-year cache header; URLs are
the bucket's public URLs.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional

from eni.types import StorageFile, StorageListResult

logger = logging.getLogger(__name__)

CACHE_CONTROL = "31536000"

# Supabase returns at most this many entries per list call.
LIST_PAGE_SIZE = 100


class SupabaseStorageService:
    """Supabase Storage implementation of StorageServiceInterface."""

    def __init__(self, client: Any, bucket: str = "attachments") -> None:
        """
        Parameters
        ----------
        client : Any
            A Supabase SDK client (from supabase.create_client) or any object
            exposing `.storage.from_(bucket)`.
        bucket : str
            Storage bucket name.
        """
        self.client = client
        self.bucket = bucket

    def _bucket(self) -> Any:
        return self.client.storage.from_(self.bucket)

    def upload(
        self,
        data: bytes,
        *,
        key: Optional[str] = None,
        mime_type: str = "application/octet-stream",
        filename: Optional[str] = None,
    ) -> StorageFile:
        if not key:
            raise ValueError("SupabaseStorageService.upload requires an explicit key")

        self._bucket().upload(
            key,
            data,
            {
                "content-type": mime_type or "application/octet-stream",
                "cache-control": CACHE_CONTROL,
                "upsert": "true",
            },
        )

        return {
            "key": key,
            "filename": filename or key.rsplit("/", 1)[-1],
            "mime_type": mime_type,
            "size": len(data),
        }

    def get(self, key: str) -> Optional[bytes]:
        try:
            return self._bucket().download(key)
        except Exception as e:
            logger.warning("Download of %s from bucket %s failed: %s", key, self.bucket, e)
            return None

    def get_url(self, key: str) -> str:
        return self._bucket().get_public_url(key)

    def delete(self, key: str) -> bool:
        try:
            removed = self._bucket().remove([key])
        except Exception as e:
            logger.warning("Delete of %s from bucket %s failed: %s", key, self.bucket, e)
            return False
        return bool(removed)

    def exists(self, key: str) -> bool:
        folder, _, name = key.rpartition("/")
        return any(entry.get("name") == name for entry in self._list_folder(folder, search=name))

    def list(
        self,
        prefix: str = "",
        limit: int = 100,
        cursor: Optional[str] = None,
    ) -> StorageListResult:
        """
        List objects under `prefix`, descending into sub-folders.

        Supabase lists one folder level at a time; entries without an id are
        folders. `cursor` is the offset returned by the previous page.
        """
        keys: List[StorageFile] = []
        self._walk(prefix.strip("/"), keys)

        offset = int(cursor) if cursor else 0
        page = keys[offset : offset + limit]
        has_more = offset + limit < len(keys)

        return {
            "files": page,
            "cursor": str(offset + len(page)) if has_more else None,
            "has_more": has_more,
        }

    def _list_folder(self, folder: str, search: Optional[str] = None) -> Iterator[Dict[str, Any]]:
        """Yield every entry of one folder, requesting page after page."""
        offset = 0
        while True:
            options: Dict[str, Any] = {"limit": LIST_PAGE_SIZE, "offset": offset}
            if search:
                options["search"] = search
            entries: List[Dict[str, Any]] = self._bucket().list(folder, options) or []
            yield from entries
            if len(entries) < LIST_PAGE_SIZE:
                return
            offset += len(entries)

    def _walk(self, folder: str, out: List[StorageFile]) -> None:
        for entry in self._list_folder(folder):
            name = entry.get("name", "")
            key = f"{folder}/{name}" if folder else name
            if entry.get("id") is None:
                self._walk(key, out)
                continue

            metadata = entry.get("metadata") or {}
            out.append(
                {
                    "key": key,
                    "filename": name,
                    "mime_type": metadata.get("mimetype", "application/octet-stream"),
                    "size": int(metadata.get("size", 0)),
                }
            )
