"""Compaction of resolved references into inline text and a shared table."""

from __future__ import annotations

from ..core.types import (
    MnemonicTrackingEntry,
    ReferenceEntry,
    ReferenceResolution,
    Section,
    SectionResolutionResult,
    shared_reference_pointer,
)


def aggregate_references(
    sections: list[Section],
    tracking: dict[str, MnemonicTrackingEntry],
) -> ReferenceResolution:
    """Build the final output from settled tracking entries.

    A mnemonic seen once is emitted inline. A mnemonic seen more than
    once is emitted as a pointer at every occurrence and its text is
    stored once in the shared references table. The table is filled in
    order of first occurrence.

    Raises:
        KeyError: If an anchor's mnemonic has no tracking entry
    """
    resolution = ReferenceResolution()
    for section in sections:
        result = SectionResolutionResult(key=section.key)
        for anchor in section.anchors:
            entry = tracking[anchor.label]
            result.references.append(
                ReferenceEntry(mnemonic=anchor.label, ref_contents=render_occurrence(entry, resolution))
            )
        resolution.sections.append(result)
    return resolution


def render_occurrence(entry: MnemonicTrackingEntry, resolution: ReferenceResolution) -> str:
    """Return what to emit at one occurrence of a mnemonic.

    Shared mnemonics are registered in the resolution's shared table.
    """
    if not entry.is_shared:
        return entry.text
    resolution.shared_references.setdefault(entry.mnemonic, entry.text)
    return shared_reference_pointer(entry.mnemonic)
