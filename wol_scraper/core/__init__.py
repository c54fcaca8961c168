"""
Core domain models.

This package contains data types and the error taxonomy that are
independent of any specific scraper.
"""

from .errors import (
    AnchorStructureError,
    NetworkFailure,
    ParseFailure,
    PayloadShapeInvalid,
    ReferenceResolutionError,
    ScraperError,
    SelectionNotFoundError,
)
from .types import (
    UNABLE_TO_EXTRACT_REFERENCE,
    AnchorReference,
    MnemonicTrackingEntry,
    PublicationKind,
    ReferenceEntry,
    ReferenceResolution,
    ResolvedReference,
    Section,
    SectionResolutionResult,
    shared_reference_pointer,
)

__all__ = [
    "UNABLE_TO_EXTRACT_REFERENCE",
    "AnchorReference",
    "AnchorStructureError",
    "MnemonicTrackingEntry",
    "NetworkFailure",
    "ParseFailure",
    "PayloadShapeInvalid",
    "PublicationKind",
    "ReferenceEntry",
    "ReferenceResolution",
    "ReferenceResolutionError",
    "ResolvedReference",
    "ScraperError",
    "Section",
    "SectionResolutionResult",
    "SelectionNotFoundError",
    "shared_reference_pointer",
]
