"""
Document-level entry point of the reference resolution engine.

Combines the deduplicator and the aggregator. Nothing survives between
calls: every call builds its own tracking map and HTTP client.
"""

from __future__ import annotations

import asyncio

import httpx

from ..config import AppConfig
from ..core.types import ReferenceResolution, Section
from .aggregator import aggregate_references
from .dedup import resolve_all


async def resolve_document(
    sections: list[Section],
    cfg: AppConfig,
    client: httpx.AsyncClient | None = None,
) -> ReferenceResolution:
    """Resolve and compact all references of one document.

    Args:
        sections: Ordered sections of anchors extracted from the document
        cfg: Application configuration
        client: Optional shared HTTP client

    Returns:
        Per-section reference entries plus the shared references table

    Raises:
        AnchorStructureError: If any anchor lacks a fetch target
    """
    tracking = await resolve_all(sections, cfg, client=client)
    return aggregate_references(sections, tracking)


def resolve_document_sync(sections: list[Section], cfg: AppConfig) -> ReferenceResolution:
    """Run resolve_document on a fresh event loop for synchronous callers."""
    return asyncio.run(resolve_document(sections, cfg))
