"""
Local filesystem storage backend.

Objects live under `base_path/<key>`; URLs are `<base_url>/<quoted key>`, to
be served by whatever HTTP layer fronts the attachments directory.
"""

import logging
import mimetypes
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import quote

from eni.types import StorageFile, StorageListResult

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_RE = re.compile(r"[^a-zA-Z0-9._-]")


class LocalStorageService:
    """Filesystem-backed implementation of StorageServiceInterface."""

    def __init__(self, base_path: Union[str, Path], base_url: str = "/api/attachments") -> None:
        self.base_path = Path(base_path)
        self.base_url = base_url.rstrip("/")

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _path(self, key: str) -> Path:
        """Resolve a key to a path, refusing keys that escape base_path."""
        root = self.base_path.resolve()
        path = (root / key).resolve()
        if path != root and root not in path.parents:
            raise ValueError(f"Storage key escapes the storage root: {key!r}")
        return path

    @staticmethod
    def _generate_key(filename: Optional[str] = None) -> str:
        now = datetime.now(timezone.utc)
        base = f"{now.year}/{now.month:02d}/{uuid.uuid4()}"
        if filename:
            return f"{base}/{_UNSAFE_FILENAME_RE.sub('_', filename)}"
        return base

    # -----------------------------------------------------------------------
    # StorageServiceInterface
    # -----------------------------------------------------------------------

    def upload(
        self,
        data: bytes,
        *,
        key: Optional[str] = None,
        mime_type: str = "application/octet-stream",
        filename: Optional[str] = None,
    ) -> StorageFile:
        key = key or self._generate_key(filename)
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

        logger.debug("Stored %d bytes at %s", len(data), path)

        return {
            "key": key,
            "filename": filename or key.rsplit("/", 1)[-1],
            "mime_type": mime_type,
            "size": len(data),
        }

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.is_file():
            return None
        return path.read_bytes()

    def get_url(self, key: str) -> str:
        return f"{self.base_url}/{quote(key, safe='/')}"

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if not path.is_file():
            return False
        path.unlink()
        return True

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def list(
        self,
        prefix: str = "",
        limit: int = 100,
        cursor: Optional[str] = None,
    ) -> StorageListResult:
        """
        List stored objects whose key starts with `prefix`, in key order.

        `cursor` is the offset returned by the previous page.
        """
        root = self.base_path.resolve()
        if not root.exists():
            return {"files": [], "cursor": None, "has_more": False}

        keys = sorted(
            path.relative_to(root).as_posix()
            for path in root.rglob("*")
            if path.is_file()
        )
        keys = [k for k in keys if k.startswith(prefix)]

        offset = int(cursor) if cursor else 0
        page = keys[offset : offset + limit]
        has_more = offset + limit < len(keys)

        files: List[StorageFile] = []
        for key in page:
            path = root / key
            files.append(
                {
                    "key": key,
                    "filename": path.name,
                    "mime_type": mimetypes.guess_type(path.name)[0] or "application/octet-stream",
                    "size": path.stat().st_size,
                }
            )

        return {
            "files": files,
            "cursor": str(offset + len(page)) if has_more else None,
            "has_more": has_more,
        }
