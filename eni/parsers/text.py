"""
Plain-text file parser.

Wraps a .txt upload in a single-note ExportDocument so it can flow through
the same import pipeline as an .enex file. The text is escaped and placed in
a <pre> block inside a minimal ENML envelope; the note title is the filename
without its extension.
"""

from datetime import datetime, timezone
from html import escape
from pathlib import PurePath
from typing import Optional, Union

from eni.models import ExportDocument, ExportedNote, NoteAttributes

SOURCE_APPLICATION = "eni text import"

ENML_TEMPLATE = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<!DOCTYPE en-note SYSTEM "http://xml.evernote.com/pub/enml2.dtd">\n'
    "<en-note><pre>{body}</pre></en-note>"
)


def parse_text_file(
    filename: str,
    content: Union[str, bytes],
    last_modified: Optional[datetime] = None,
) -> ExportDocument:
    """Build a one-note ExportDocument from a plain-text file."""
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")

    now = datetime.now(timezone.utc)
    created = (last_modified or now).astimezone(timezone.utc)

    note = ExportedNote(
        title=PurePath(filename).stem or filename,
        content=ENML_TEMPLATE.format(body=escape(content, quote=False)),
        created=created.strftime("%Y%m%dT%H%M%SZ"),
        updated=now.strftime("%Y%m%dT%H%M%SZ"),
        attributes=NoteAttributes(source_application=SOURCE_APPLICATION, source="import-file"),
    )

    return ExportDocument(
        notes=(note,),
        export_date=now.strftime("%Y%m%dT%H%M%SZ"),
        application=SOURCE_APPLICATION,
    )
