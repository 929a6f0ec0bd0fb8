"""
Parsed-export data model.

These dataclasses are produced once by the ENEX parser and consumed by the
orchestrator. They are frozen: nothing downstream mutates a parsed note.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class ResourceAttributes:
    """<resource-attributes> block of a resource."""

    file_name: Optional[str] = None
    source_url: Optional[str] = None
    timestamp: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    altitude: Optional[float] = None
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None
    attachment: bool = False


@dataclass(frozen=True)
class EmbeddedResource:
    """One <resource> element: base64 payload plus its metadata."""

    data: str
    mime: str = DEFAULT_MIME_TYPE
    encoding: str = "base64"
    width: Optional[int] = None
    height: Optional[int] = None
    duration: Optional[int] = None
    recognition: Optional[str] = None
    attributes: Optional[ResourceAttributes] = None

    @property
    def file_name(self) -> Optional[str]:
        return self.attributes.file_name if self.attributes else None


@dataclass(frozen=True)
class NoteAttributes:
    """<note-attributes> block of a note."""

    source_url: Optional[str] = None
    source_application: Optional[str] = None
    source: Optional[str] = None
    author: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    altitude: Optional[float] = None
    place_name: Optional[str] = None
    content_class: Optional[str] = None
    subject_date: Optional[str] = None
    reminder_order: Optional[int] = None
    reminder_time: Optional[str] = None
    reminder_done_time: Optional[str] = None


@dataclass(frozen=True)
class ExportedNote:
    """One <note> element."""

    title: str
    content: str
    created: Optional[str] = None
    updated: Optional[str] = None
    tags: Tuple[str, ...] = ()
    attributes: Optional[NoteAttributes] = None
    resources: Tuple[EmbeddedResource, ...] = ()


@dataclass(frozen=True)
class RejectedNote:
    """A <note> the parser dropped (missing title or content)."""

    index: int
    title: str
    reason: str


@dataclass(frozen=True)
class ExportDocument:
    """Root parse result of one .enex file. Note order is document order."""

    notes: Tuple[ExportedNote, ...] = ()
    export_date: Optional[str] = None
    application: Optional[str] = None
    version: Optional[str] = None
    rejected: Tuple[RejectedNote, ...] = ()
    warnings: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ExtractedResource:
    """Output of extracting one EmbeddedResource into the blob store."""

    storage_key: str
    url: str
    hash: str
    filename: str
    mime_type: str
    size: int
    width: Optional[int] = None
    height: Optional[int] = None
