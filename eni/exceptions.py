"""
Exception hierarchy for the Evernote import pipeline.

The pipeline distinguishes failures by *blast radius*:

    • ParseError             → document-fatal (the whole file is rejected)
    • ResourceError          → resource-recoverable (one attachment is skipped)
    • PersistenceError       → raised by the Supabase wrapper; the orchestrator
                               treats it as note-recoverable inside the note loop
    • ImportValidationError  → caller-side, raised before any pipeline stage runs
    • ConfigError            → missing or invalid configuration
"""

from typing import Optional


class EniError(Exception):
    """Base exception for the import pipeline."""


class ConfigError(EniError):
    """Raised when configuration is missing or invalid."""


class ParseError(EniError):
    """Raised when an export file is not well-formed or lacks the en-export root."""


class ResourceError(EniError):
    """
    Raised when a single embedded resource cannot be decoded or stored.

    `index` is the resource position inside its note, when known.
    """

    def __init__(self, message: str, index: Optional[int] = None) -> None:
        super().__init__(message)
        self.index = index


class PersistenceError(EniError):
    """Raised when the persistence backend reports an error response."""


class ImportValidationError(EniError):
    """Raised when an uploaded batch violates file count, size, or type limits."""
