"""
Document-scoped single-flight resolution of reference mnemonics.

Every distinct mnemonic in a document is resolved exactly once, however
many anchors carry it. Entries are created and their resolution task is
started synchronously, before anything is awaited, so concurrent
sightings always find the task that is already in flight. Occurrences
are counted during the same synchronous walk and do not depend on the
order in which fetches complete.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

import httpx

from ..config import AppConfig
from ..core.errors import AnchorStructureError, ReferenceResolutionError
from ..core.types import (
    UNABLE_TO_EXTRACT_REFERENCE,
    AnchorReference,
    MnemonicTrackingEntry,
    ResolvedReference,
    Section,
)
from ..fetch.fetcher import build_client
from ..logging_utils import log_event
from . import resolver

logger = logging.getLogger(__name__)

MnemonicTracking = dict[str, MnemonicTrackingEntry]


def validate_sections(sections: Iterable[Section]) -> None:
    """Check that every anchor can be fetched before any request is made.

    Raises:
        AnchorStructureError: If an anchor is not an AnchorReference or has no target URL
    """
    for section in sections:
        for index, anchor in enumerate(section.anchors):
            if not isinstance(anchor, AnchorReference):
                raise AnchorStructureError(
                    f"Section [{section.key}] anchor {index} is not an AnchorReference."
                )
            if not anchor.target_url:
                raise AnchorStructureError(
                    f"Section [{section.key}] anchor [{anchor.label}] has no target URL."
                )


def track_sighting(
    tracking: MnemonicTracking,
    anchor: AnchorReference,
    start: StartResolution,
) -> MnemonicTrackingEntry:
    """Record one sighting of an anchor's mnemonic.

    Creates the entry and starts its resolution on the first sighting;
    every sighting increments the occurrence count. Must not await.
    """
    entry = tracking.get(anchor.label)
    if entry is None:
        entry = MnemonicTrackingEntry(mnemonic=anchor.label)
        tracking[anchor.label] = entry
    if entry.occurrence_count == 0:
        entry.in_flight = start(entry, anchor)
    entry.occurrence_count += 1
    return entry


class StartResolution:
    """Starts the resolution task for a tracking entry.

    Holds what every task of one document resolution shares: the
    configuration, the HTTP client and the optional concurrency limit.
    """

    def __init__(
        self,
        cfg: AppConfig,
        client: httpx.AsyncClient | None,
        semaphore: asyncio.Semaphore | None = None,
    ):
        self.cfg = cfg
        self.client = client
        self.semaphore = semaphore

    def __call__(self, entry: MnemonicTrackingEntry, anchor: AnchorReference) -> asyncio.Task:
        return asyncio.create_task(self._settle(entry, anchor), name=f"resolve:{anchor.label}")

    async def _settle(self, entry: MnemonicTrackingEntry, anchor: AnchorReference) -> None:
        try:
            result = await self._resolve(anchor)
        except Exception as exc:  # noqa: BLE001
            # Any failure settles this mnemonic only.
            log_event(
                logger,
                f"Unexpected error resolving mnemonic [{anchor.label}]: {type(exc).__name__}: {exc}",
                level=logging.ERROR,
                event="reference_failed",
                mnemonic=anchor.label,
                url=anchor.target_url,
                error_type=type(exc).__name__,
            )
            error = ReferenceResolutionError(f"{type(exc).__name__}: {exc}", anchor.target_url)
            error.__cause__ = exc
            result = ResolvedReference(mnemonic=anchor.label, text=None, error=error)

        if result.error is not None or result.text is None:
            entry.text = UNABLE_TO_EXTRACT_REFERENCE
            entry.error = result.error
        else:
            entry.text = result.text
        logger.debug("Finished extracting data for mnemonic [%s]", entry.mnemonic)

    async def _resolve(self, anchor: AnchorReference) -> ResolvedReference:
        if self.semaphore is None:
            return await resolver.resolve_anchor(anchor, self.cfg, client=self.client)
        async with self.semaphore:
            return await resolver.resolve_anchor(anchor, self.cfg, client=self.client)


async def resolve_all(
    sections: list[Section],
    cfg: AppConfig,
    tracking: MnemonicTracking | None = None,
    client: httpx.AsyncClient | None = None,
) -> MnemonicTracking:
    """Resolve every distinct mnemonic referenced by a document.

    Args:
        sections: Ordered sections, each with ordered anchors
        cfg: Application configuration
        tracking: Optional map to fill; a new one is created otherwise
        client: Optional shared HTTP client; one is created and closed otherwise

    Returns:
        Map from mnemonic to its tracking entry, with text settled for every entry

    Raises:
        AnchorStructureError: If any anchor lacks a fetch target
    """
    validate_sections(sections)
    tracking = {} if tracking is None else tracking

    if client is None:
        async with build_client(cfg.fetch) as own_client:
            return await _resolve_all(sections, cfg, tracking, own_client)
    return await _resolve_all(sections, cfg, tracking, client)


async def _resolve_all(
    sections: list[Section],
    cfg: AppConfig,
    tracking: MnemonicTracking,
    client: httpx.AsyncClient,
) -> MnemonicTracking:
    limit = cfg.references.max_concurrency
    semaphore = asyncio.Semaphore(limit) if limit else None
    start = StartResolution(cfg, client, semaphore)

    anchors_seen = 0
    for section in sections:
        for anchor in section.anchors:
            track_sighting(tracking, anchor, start)
            anchors_seen += 1

    in_flight = [entry.in_flight for entry in tracking.values() if entry.in_flight is not None]
    log_event(
        logger,
        "Resolving references",
        event="references_start",
        sections=len(sections),
        anchors=anchors_seen,
        distinct=len(in_flight),
    )
    await asyncio.gather(*in_flight)

    failed = sum(1 for entry in tracking.values() if entry.error is not None)
    log_event(
        logger,
        "References resolved",
        event="references_complete",
        distinct=len(tracking),
        failed=failed,
    )
    return tracking
