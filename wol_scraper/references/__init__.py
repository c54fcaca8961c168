"""
Reference resolution and deduplication engine.

This package resolves cross-reference anchors to text, fetching each
distinct mnemonic of a document once and compacting repeated references
into a shared table.
"""

from .aggregator import aggregate_references
from .classifier import classify_publication
from .dedup import resolve_all
from .engine import resolve_document, resolve_document_sync
from .resolver import anchor_from_tag, build_anchor_reference, resolve_anchor, validate_payload
from .strategies import (
    apply_strategy,
    clean_text,
    collapse_line_breaks,
    extract_bible_study_text,
    extract_default_text,
    extract_watchtower_text,
    pick_strategy,
)

__all__ = [
    "aggregate_references",
    "anchor_from_tag",
    "apply_strategy",
    "build_anchor_reference",
    "classify_publication",
    "clean_text",
    "collapse_line_breaks",
    "extract_bible_study_text",
    "extract_default_text",
    "extract_watchtower_text",
    "pick_strategy",
    "resolve_all",
    "resolve_anchor",
    "resolve_document",
    "resolve_document_sync",
    "validate_payload",
]
