"""Evernote export import pipeline: ENEX parsing, ENML conversion, attachment extraction, and Supabase persistence."""

__version__ = "0.1.0"
