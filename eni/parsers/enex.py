"""
ENEX (Evernote export) parser.

Decodes one .enex XML document into an immutable ExportDocument:

    <en-export export-date="..." application="..." version="...">
        <note>
            <title/> <content/> <created/> <updated/> <tag/>*
            <note-attributes/>?
            <resource>*
        </note>*
    </en-export>

Policy:
    • Malformed XML or a missing <en-export> root raises ParseError. That is
      the only document-fatal failure.
    • A note without a title or without content is dropped and recorded in
      ExportDocument.rejected; parsing continues.
    • Unknown elements are ignored, so newer export formats still parse.
"""

import logging
import re
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union

from eni.exceptions import ParseError
from eni.models import (
    DEFAULT_MIME_TYPE,
    EmbeddedResource,
    ExportDocument,
    ExportedNote,
    NoteAttributes,
    RejectedNote,
    ResourceAttributes,
)

logger = logging.getLogger(__name__)

ROOT_TAG = "en-export"

# type/subtype as found in MIME headers; anything else falls back to the default.
MIME_RE = re.compile(r"^[A-Za-z0-9][\w.+-]*/[A-Za-z0-9][\w.+-]*$")

# yyyyMMddTHHmmssZ, e.g. 20240115T093000Z
COMPACT_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})Z$")

# Cheap structural checks used by is_valid_enex().
_ROOT_OPEN_RE = re.compile(r"<en-export(?:\s[^>]*)?>")
_ROOT_SELF_CLOSED_RE = re.compile(r"<en-export(?:\s[^>]*)?/>")
_SNIFF_WINDOW = 8192


# ============================================================================
# PUBLIC API
# ============================================================================


def parse_enex(content: Union[str, bytes]) -> ExportDocument:
    """
    Parse ENEX content into an ExportDocument.

    Parameters
    ----------
    content : str | bytes
        Decoded XML text, or the raw file bytes. Bytes are decoded by the
        XML parser using the document's declared encoding (UTF-8 when none
        is declared).

    Returns
    -------
    ExportDocument

    Raises
    ------
    ParseError
        If the input is empty, not well-formed XML, or its root element is
        not <en-export>.
    """
    if isinstance(content, str):
        content = content.lstrip("\ufeff")

    if not content or not content.strip():
        raise ParseError("Invalid ENEX file: empty document")

    try:
        root = ET.fromstring(content)
    except ET.ParseError as exc:
        raise ParseError(f"Invalid ENEX file: {exc}") from exc

    if root.tag != ROOT_TAG:
        raise ParseError(f"Invalid ENEX file: missing {ROOT_TAG} root element (found <{root.tag}>)")

    notes: List[ExportedNote] = []
    rejected: List[RejectedNote] = []
    warnings: List[str] = []

    for index, note_elem in enumerate(root.findall("note")):
        note, reason = _parse_note(note_elem, warnings)
        if note is None:
            title = _text(note_elem, "title") or "Untitled"
            rejected.append(RejectedNote(index=index, title=title, reason=reason or "invalid note"))
            logger.warning("Skipping note %d (%r): %s", index, title, reason)
            continue
        notes.append(note)

    logger.info("Parsed %d notes (%d rejected)", len(notes), len(rejected))

    return ExportDocument(
        notes=tuple(notes),
        export_date=root.get("export-date"),
        application=root.get("application"),
        version=root.get("version"),
        rejected=tuple(rejected),
        warnings=tuple(warnings),
    )


def is_valid_enex(content: Union[str, bytes]) -> bool:
    """
    Cheap structural check: does this look like an ENEX document?

    Only the head and tail of the input are inspected; no XML parse is
    performed. Use it to reject non-ENEX uploads early. A True result does not
    guarantee that parse_enex() will succeed.
    """
    if isinstance(content, bytes):
        head = content[:_SNIFF_WINDOW].decode("utf-8", errors="ignore")
        tail = content[-_SNIFF_WINDOW:].decode("utf-8", errors="ignore")
    else:
        head = content[:_SNIFF_WINDOW]
        tail = content[-_SNIFF_WINDOW:]

    if _ROOT_SELF_CLOSED_RE.search(head):
        return True

    return bool(_ROOT_OPEN_RE.search(head)) and "</en-export>" in tail


def parse_evernote_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an Evernote timestamp into an aware UTC datetime.

    Accepts the compact export form (20240115T093000Z) and ISO 8601.
    Returns None for empty or unparseable values.
    """
    if not value:
        return None

    value = value.strip()
    match = COMPACT_DATE_RE.match(value)
    if match:
        year, month, day, hour, minute, second = (int(part) for part in match.groups())
        try:
            return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
        except ValueError:
            return None

    if "-" not in value:
        return None

    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# ============================================================================
# ELEMENT PARSERS
# ============================================================================


def _parse_note(
    elem: ET.Element, warnings: List[str]
) -> Tuple[Optional[ExportedNote], Optional[str]]:
    """Return (note, None) on success or (None, reason) when the note is rejected."""
    title = _text(elem, "title")
    if not title:
        return None, "missing title"

    content = _text(elem, "content")
    if not content:
        return None, "missing content"

    tags: List[str] = []
    for tag_elem in elem.findall("tag"):
        name = (tag_elem.text or "").strip()
        if name and name not in tags:
            tags.append(name)

    resources: List[EmbeddedResource] = []
    for res_index, res_elem in enumerate(elem.findall("resource")):
        resource = _parse_resource(res_elem)
        if resource is None:
            warnings.append(f'Resource {res_index} of "{title}" has no data and was skipped')
            continue
        resources.append(resource)

    attrs_elem = elem.find("note-attributes")

    return (
        ExportedNote(
            title=title,
            content=content,
            created=_text(elem, "created"),
            updated=_text(elem, "updated"),
            tags=tuple(tags),
            attributes=_parse_note_attributes(attrs_elem) if attrs_elem is not None else None,
            resources=tuple(resources),
        ),
        None,
    )


def _parse_resource(elem: ET.Element) -> Optional[EmbeddedResource]:
    data_elem = elem.find("data")
    if data_elem is None or not data_elem.text:
        return None

    # Exports wrap base64 at 76 columns; the line breaks are not data.
    data = "".join(data_elem.text.split())
    if not data:
        return None

    mime = _text(elem, "mime") or ""
    if not MIME_RE.match(mime):
        mime = DEFAULT_MIME_TYPE

    attrs_elem = elem.find("resource-attributes")

    return EmbeddedResource(
        data=data,
        mime=mime.lower(),
        encoding=data_elem.get("encoding", "base64"),
        width=_int(_text(elem, "width")),
        height=_int(_text(elem, "height")),
        duration=_int(_text(elem, "duration")),
        recognition=_text(elem, "recognition"),
        attributes=_parse_resource_attributes(attrs_elem) if attrs_elem is not None else None,
    )


def _parse_note_attributes(elem: ET.Element) -> NoteAttributes:
    return NoteAttributes(
        source_url=_text(elem, "source-url"),
        source_application=_text(elem, "source-application"),
        source=_text(elem, "source"),
        author=_text(elem, "author"),
        latitude=_float(_text(elem, "latitude")),
        longitude=_float(_text(elem, "longitude")),
        altitude=_float(_text(elem, "altitude")),
        place_name=_text(elem, "place-name"),
        content_class=_text(elem, "content-class"),
        subject_date=_text(elem, "subject-date"),
        reminder_order=_int(_text(elem, "reminder-order")),
        reminder_time=_text(elem, "reminder-time"),
        reminder_done_time=_text(elem, "reminder-done-time"),
    )


def _parse_resource_attributes(elem: ET.Element) -> ResourceAttributes:
    return ResourceAttributes(
        file_name=_text(elem, "file-name"),
        source_url=_text(elem, "source-url"),
        timestamp=_text(elem, "timestamp"),
        latitude=_float(_text(elem, "latitude")),
        longitude=_float(_text(elem, "longitude")),
        altitude=_float(_text(elem, "altitude")),
        camera_make=_text(elem, "camera-make"),
        camera_model=_text(elem, "camera-model"),
        attachment=(_text(elem, "attachment") or "").lower() == "true",
    )


# ============================================================================
# SCALAR HELPERS
# ============================================================================


def _text(elem: ET.Element, path: str) -> Optional[str]:
    """Stripped child text, or None when the child is absent or blank."""
    value = elem.findtext(path)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value else None
    except ValueError:
        return None


def _float(value: Optional[str]) -> Optional[float]:
    try:
        return float(value) if value else None
    except ValueError:
        return None
