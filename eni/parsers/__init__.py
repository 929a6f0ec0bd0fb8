"""
Parsers for import sources.

    • enex  - Evernote .enex export documents
    • enml  - note-body markup to HTML / plain text
    • text  - plain-text files wrapped as a single note
"""

from .enex import is_valid_enex, parse_enex, parse_evernote_date
from .enml import ConversionOptions, convert_enml_to_html, extract_plain_text
from .text import parse_text_file

__all__ = [
    "parse_enex",
    "is_valid_enex",
    "parse_evernote_date",
    "ConversionOptions",
    "convert_enml_to_html",
    "extract_plain_text",
    "parse_text_file",
]
