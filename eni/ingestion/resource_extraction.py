"""
resource_extraction.py

Resource (attachment) extraction for the import pipeline.

Every <resource> embedded in a note carries its bytes as base64. For each one
this module:

    1. decodes the payload
    2. computes the MD5 digest of the decoded bytes
    3. derives a safe, collision-resistant filename
    4. uploads the bytes to the storage backend under
       attachments/<user_id>/<note_id>/<filename>
    5. returns an ExtractedResource with the dereferenceable URL

MD5 is not a choice: Evernote references resources from the note body with
<en-media hash="..."> where the hash is the MD5 of the resource bytes. The
hash map built here is keyed by that digest so the ENML converter can resolve
every reference.

extract_resource() raises ResourceError for one bad resource.
extract_resources() never raises: failures are collected per index and the
remaining resources are still processed.
"""

import base64
import binascii
import hashlib
import logging
import math
import re
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Dict, List, Optional, Sequence

from eni.exceptions import ResourceError
from eni.models import EmbeddedResource, ExtractedResource
from eni.types import ResourceHashMap, StorageServiceInterface

logger = logging.getLogger(__name__)

MAX_FILENAME_LENGTH = 100
DEDUPE_SCAN_LIMIT = 1000

_UNSAFE_FILENAME_RE = re.compile(r"[^a-zA-Z0-9._-]")

MIME_EXTENSIONS: Dict[str, str] = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
    "image/bmp": "bmp",
    "image/tiff": "tiff",
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
    "audio/ogg": "ogg",
    "audio/m4a": "m4a",
    "audio/x-m4a": "m4a",
    "video/mp4": "mp4",
    "video/webm": "webm",
    "video/quicktime": "mov",
    "application/pdf": "pdf",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/vnd.ms-excel": "xls",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "xlsx",
    "text/plain": "txt",
    "text/html": "html",
    "text/csv": "csv",
}
FALLBACK_EXTENSION = "bin"


@dataclass
class ExtractionResult:
    """Aggregate output of extract_resources()."""

    extracted: List[ExtractedResource] = field(default_factory=list)
    hash_map: ResourceHashMap = field(default_factory=dict)
    errors: List[Dict[str, object]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Naming helpers
# ---------------------------------------------------------------------------


def calculate_md5_hash(data: bytes) -> str:
    """Lowercase hex MD5 of `data`, the digest Evernote uses in en-media."""
    return hashlib.md5(data).hexdigest()


def extension_for_mime(mime_type: str) -> str:
    return MIME_EXTENSIONS.get((mime_type or "").lower(), FALLBACK_EXTENSION)


def derive_filename(original_name: Optional[str], content_hash: str, mime_type: str) -> str:
    """
    Build the stored filename for a resource.

    With an original filename:  <sanitized stem>_<hash[:8]>.<ext>
    Without one:                resource_<hash[:16]>.<ext>

    The original name is reduced to [a-zA-Z0-9._-] and capped before the hash
    fragment is appended. Its own extension wins over the MIME lookup.
    """
    if original_name and original_name.strip():
        sanitized = _UNSAFE_FILENAME_RE.sub("_", original_name.strip())[:MAX_FILENAME_LENGTH]
        path = PurePath(sanitized)
        ext = path.suffix.lstrip(".") or extension_for_mime(mime_type)
        stem = path.stem if path.suffix else sanitized
        return f"{stem}_{content_hash[:8]}.{ext}"

    return f"resource_{content_hash[:16]}.{extension_for_mime(mime_type)}"


def build_storage_key(user_id: str, note_id: str, filename: str) -> str:
    return f"attachments/{user_id}/{note_id}/{filename}"


def decode_resource_data(data: str, index: Optional[int] = None) -> bytes:
    """Strictly decode a base64 payload, raising ResourceError on bad input."""
    compact = "".join((data or "").split())
    try:
        decoded = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ResourceError(f"Invalid base64 data: {e}", index=index) from e

    if not decoded:
        raise ResourceError("Resource has no data", index=index)
    return decoded


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def extract_resource(
    resource: EmbeddedResource,
    storage: StorageServiceInterface,
    *,
    user_id: str,
    note_id: str,
    index: Optional[int] = None,
    dedupe: bool = False,
) -> ExtractedResource:
    """
    Decode, hash, name, and store one embedded resource.

    Parameters
    ----------
    resource : EmbeddedResource
        The parsed <resource> element.
    storage : StorageServiceInterface
        Blob store receiving the bytes.
    user_id, note_id : str
        Namespace for the storage key.
    index : int | None
        Position of the resource in its note; carried on ResourceError.
    dedupe : bool
        When True, reuse an object already stored for this user with the same
        hash fragment instead of uploading again.

    Raises
    ------
    ResourceError
        When the payload does not decode or the upload fails.
    """
    data = decode_resource_data(resource.data, index=index)
    content_hash = calculate_md5_hash(data)
    filename = derive_filename(resource.file_name, content_hash, resource.mime)
    storage_key = build_storage_key(user_id, note_id, filename)

    existing_key = _find_existing_key(storage, content_hash, user_id) if dedupe else None

    try:
        if existing_key:
            logger.debug("Reusing stored object %s for hash %s", existing_key, content_hash)
            storage_key = existing_key
        else:
            stored = storage.upload(
                data,
                key=storage_key,
                mime_type=resource.mime,
                filename=filename,
            )
            storage_key = stored["key"]
        url = storage.get_url(storage_key)
    except Exception as e:
        raise ResourceError(f"Upload failed for {filename}: {e}", index=index) from e

    return ExtractedResource(
        storage_key=storage_key,
        url=url,
        hash=content_hash,
        filename=filename,
        mime_type=resource.mime,
        size=len(data),
        width=resource.width,
        height=resource.height,
    )


def extract_resources(
    resources: Sequence[EmbeddedResource],
    storage: StorageServiceInterface,
    *,
    user_id: str,
    note_id: str,
    dedupe: bool = False,
) -> ExtractionResult:
    """
    Extract every resource of one note and build its ResourceHashMap.

    Never raises. A failing resource is recorded as {"index", "error"} and
    left out of both `extracted` and `hash_map`; the converter then renders
    a placeholder for its reference.
    """
    result = ExtractionResult()

    for i, resource in enumerate(resources):
        try:
            extracted = extract_resource(
                resource,
                storage,
                user_id=user_id,
                note_id=note_id,
                index=i,
                dedupe=dedupe,
            )
        except Exception as e:
            logger.warning("Failed to extract resource %d of note %s: %s", i, note_id, e)
            result.errors.append({"index": i, "error": str(e)})
            continue

        result.extracted.append(extracted)
        result.hash_map[extracted.hash] = {
            "url": extracted.url,
            "mime_type": extracted.mime_type,
            "filename": extracted.filename,
            "width": extracted.width,
            "height": extracted.height,
        }

    return result


# ---------------------------------------------------------------------------
# Advisory dedup lookup
# ---------------------------------------------------------------------------


def _find_existing_key(
    storage: StorageServiceInterface, content_hash: str, user_id: str
) -> Optional[str]:
    fragment = content_hash[:8]
    try:
        listing = storage.list(prefix=f"attachments/{user_id}/", limit=DEDUPE_SCAN_LIMIT)
    except Exception as e:
        logger.warning("Existing-resource lookup failed for user %s: %s", user_id, e)
        return None

    for stored in listing["files"]:
        if fragment in stored["key"]:
            return stored["key"]
    return None


def find_existing_resource(
    storage: StorageServiceInterface, content_hash: str, user_id: str
) -> Optional[str]:
    """
    Return the URL of an object already stored for this user whose key
    carries the same hash fragment, or None.

    Best effort only: it scans one listing page and any backend error is
    logged and reported as "not found".
    """
    key = _find_existing_key(storage, content_hash, user_id)
    if key is None:
        return None
    try:
        return storage.get_url(key)
    except Exception as e:
        logger.warning("Could not resolve URL for %s: %s", key, e)
        return None


def calculate_total_resource_size(resources: Sequence[EmbeddedResource]) -> int:
    """Estimated decoded size in bytes (base64 length × 0.75, rounded up)."""
    return sum(math.ceil(len(r.data) * 0.75) for r in resources)
