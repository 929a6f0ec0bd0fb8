"""
In-memory storage backend.

Used by `eni import run --dry-run` so a rehearsal never writes attachments
anywhere, and by the test suite as a deterministic blob store. Objects live
in a dict for the lifetime of the instance.
"""

from typing import Dict, List, Optional

from eni.types import StorageFile, StorageListResult


class MemoryStorageService:
    """Dict-backed implementation of StorageServiceInterface."""

    def __init__(self, base_url: str = "memory://attachments") -> None:
        self.base_url = base_url.rstrip("/")
        self.objects: Dict[str, bytes] = {}
        self.mime_types: Dict[str, str] = {}

        # Keys in upload order; tests assert on this.
        self.uploads: List[str] = []

    def upload(
        self,
        data: bytes,
        *,
        key: Optional[str] = None,
        mime_type: str = "application/octet-stream",
        filename: Optional[str] = None,
    ) -> StorageFile:
        key = key or f"objects/{len(self.uploads) + 1}"
        self.objects[key] = data
        self.mime_types[key] = mime_type
        self.uploads.append(key)
        return {
            "key": key,
            "filename": filename or key.rsplit("/", 1)[-1],
            "mime_type": mime_type,
            "size": len(data),
        }

    def get(self, key: str) -> Optional[bytes]:
        return self.objects.get(key)

    def get_url(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def delete(self, key: str) -> bool:
        self.mime_types.pop(key, None)
        return self.objects.pop(key, None) is not None

    def exists(self, key: str) -> bool:
        return key in self.objects

    def list(
        self,
        prefix: str = "",
        limit: int = 100,
        cursor: Optional[str] = None,
    ) -> StorageListResult:
        keys = sorted(k for k in self.objects if k.startswith(prefix))
        offset = int(cursor) if cursor else 0
        page = keys[offset : offset + limit]
        has_more = offset + limit < len(keys)

        return {
            "files": [
                {
                    "key": k,
                    "filename": k.rsplit("/", 1)[-1],
                    "mime_type": self.mime_types.get(k, "application/octet-stream"),
                    "size": len(self.objects[k]),
                }
                for k in page
            ],
            "cursor": str(offset + len(page)) if has_more else None,
            "has_more": has_more,
        }
