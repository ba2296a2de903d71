"""Prompt package for the table export service."""

from .table_extraction import TABLE_EXTRACTION_PROMPT

__all__ = [
    "TABLE_EXTRACTION_PROMPT",
]
