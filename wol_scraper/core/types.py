"""
Core data types for reference resolution.

This module defines the data structures shared by the resolution engine
and the page scrapers:
- AnchorReference: A cross-reference anchor found in a page
- Section: An ordered group of anchors belonging to one part of a page
- PublicationKind: Which rendering template produced a referenced payload
- ResolvedReference: The outcome of resolving one anchor
- MnemonicTrackingEntry: Per-mnemonic bookkeeping during one document resolution
- SectionResolutionResult / ReferenceResolution: The aggregated output
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from .errors import ReferenceResolutionError

UNABLE_TO_EXTRACT_REFERENCE = "unable to extract reference"
SHARED_REFERENCES_KEY = "sharedMnemonicReferences"


def shared_reference_pointer(mnemonic: str) -> str:
    """Build the marker emitted in place of text for a recurring mnemonic."""
    return f'SEE: {SHARED_REFERENCES_KEY}["{mnemonic}"]'


@dataclass(frozen=True)
class AnchorReference:
    """A cross-reference anchor to a scripture passage or another publication.

    Attributes:
        label: The visible mnemonic text of the anchor (e.g., "Mat. 5:3")
        target_url: Absolute URL of the JSON payload the anchor points to
    """
    label: str
    target_url: str


@dataclass
class Section:
    """An ordered group of anchors that belong to one part of a document.

    Attributes:
        key: Identifier of the section within its document
        anchors: Anchors in document order
        title: Optional human readable section title
    """
    key: str
    anchors: list[AnchorReference] = field(default_factory=list)
    title: str = ""


class PublicationKind(str, Enum):
    """Closed set of publication templates a referenced payload can come from."""

    WATCHTOWER = "watchtower"
    BIBLE_STUDY_EDITION = "bible_study_edition"
    DEFAULT = "default"


ExtractionStrategy = Callable[[str], str]


@dataclass
class ResolvedReference:
    """Result of resolving a single anchor.

    Either text will be populated (success) or error will be populated (failure),
    but never both.

    Attributes:
        mnemonic: The anchor label this result belongs to
        text: Extracted plain text of the referenced publication, or None on failure
        kind: Publication kind the payload was classified as, or None on failure
        error: The typed failure, or None on success
    """
    mnemonic: str
    text: str | None
    kind: PublicationKind | None = None
    error: ReferenceResolutionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class MnemonicTrackingEntry:
    """Bookkeeping for one distinct mnemonic during a document resolution.

    Attributes:
        mnemonic: The deduplication key
        text: Resolved text, or the failure sentinel once in_flight settles
        occurrence_count: How many anchors in the document carry this mnemonic
        in_flight: The single task shared by every sighting of this mnemonic
        error: The failure recorded for this mnemonic, if any
    """
    mnemonic: str
    text: str = ""
    occurrence_count: int = 0
    in_flight: asyncio.Task | None = None
    error: ReferenceResolutionError | None = None

    @property
    def is_shared(self) -> bool:
        return self.occurrence_count > 1


@dataclass
class ReferenceEntry:
    """One anchor occurrence in the aggregated output.

    Attributes:
        mnemonic: The anchor label
        ref_contents: Inline text, or a pointer into the shared references table
    """
    mnemonic: str
    ref_contents: str

    def to_dict(self) -> dict[str, str]:
        return {"mnemonic": self.mnemonic, "refContents": self.ref_contents}


@dataclass
class SectionResolutionResult:
    """Aggregated references for one section, in anchor order."""

    key: str
    references: list[ReferenceEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "references": [ref.to_dict() for ref in self.references]}


@dataclass
class ReferenceResolution:
    """Final output of a document-scoped resolution.

    Attributes:
        sections: Per-section results in input order
        shared_references: Text of every mnemonic that occurs more than once
    """
    sections: list[SectionResolutionResult] = field(default_factory=list)
    shared_references: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sections": [section.to_dict() for section in self.sections],
            SHARED_REFERENCES_KEY: dict(self.shared_references),
        }
