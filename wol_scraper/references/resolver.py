"""
One-hop resolution of a cross-reference anchor to plain text.

Resolving an anchor means:
1. Fetch the JSON payload behind the anchor (exactly one request)
2. Validate that the payload carries an item with content and articleClasses
3. Classify the item's publication kind
4. Apply the matching text extraction strategy

Failures talking to the site are returned as data on ResolvedReference.
Anchors without a link are structural errors and raise immediately.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx
from bs4 import Tag

from ..config import AppConfig, get_base_url
from ..core.errors import (
    AnchorStructureError,
    NetworkFailure,
    ParseFailure,
    PayloadShapeInvalid,
    ReferenceResolutionError,
)
from ..core.types import AnchorReference, ResolvedReference
from ..fetch.fetcher import fetch_json
from ..logging_utils import log_event, truncate_text
from .classifier import classify_publication
from .strategies import apply_strategy, clean_text

logger = logging.getLogger(__name__)


def build_anchor_reference(label: str, href: str | None, base_url: str, prefix_length: int = 3) -> AnchorReference:
    """Build an AnchorReference from an anchor's text and relative link.

    The first `prefix_length` characters of the href (the language
    segment, e.g. "/es") are dropped and the rest is joined to base_url.

    Raises:
        AnchorStructureError: If href is missing or empty
    """
    if not href:
        raise AnchorStructureError(f"Anchor [{label}] has no href to build a fetch target from.")
    return AnchorReference(label=label, target_url=f"{base_url.rstrip('/')}{href[prefix_length:]}")


def anchor_from_tag(tag: Tag, cfg: AppConfig, label: str | None = None) -> AnchorReference:
    """Build an AnchorReference from an `<a>` element.

    Args:
        tag: The anchor element
        cfg: Application configuration (base URL, href prefix length)
        label: Mnemonic to use instead of the element text

    Raises:
        AnchorStructureError: If the element has no href attribute
    """
    mnemonic = label if label is not None else clean_text(tag.get_text())
    return build_anchor_reference(
        mnemonic,
        tag.get("href"),
        get_base_url(cfg.fetch),
        cfg.references.href_prefix_length,
    )


def validate_payload(payload: Any, url: str | None = None) -> dict[str, Any]:
    """Check that a payload is usable for reference extraction.

    Returns:
        The first item of the payload

    Raises:
        PayloadShapeInvalid: If items is missing or empty, or the first item
            lacks a non-empty content or articleClasses string
    """
    items = payload.get("items") if isinstance(payload, dict) else None
    if not isinstance(items, list) or not items:
        raise PayloadShapeInvalid("Payload doesn't contain any item.", url)
    item = items[0]
    if not isinstance(item, dict):
        raise PayloadShapeInvalid("Payload item is not an object.", url)
    problems = [
        key
        for key in ("content", "articleClasses")
        if not isinstance(item.get(key), str) or not item.get(key)
    ]
    if problems:
        raise PayloadShapeInvalid(f"Payload item lacks {', '.join(problems)}.", url)
    return item


def decode_payload(text: str, url: str | None = None) -> dict[str, Any]:
    """Decode a reference payload body and return its first item.

    Raises:
        ParseFailure: If the body is not JSON, or nests too deeply to decode
        PayloadShapeInvalid: If the decoded payload is unusable
    """
    try:
        payload = json.loads(text)
    except (ValueError, RecursionError) as exc:
        raise ParseFailure(f"Failed to parse JSON response: {type(exc).__name__}: {exc}", url) from exc
    return validate_payload(payload, url)


async def resolve_anchor(
    anchor: AnchorReference,
    cfg: AppConfig,
    client: httpx.AsyncClient | None = None,
) -> ResolvedReference:
    """Resolve one anchor to the text of the publication it references.

    Never raises for fetch, decode or payload problems: those come back
    as a ResolvedReference with error set and text None.

    Args:
        anchor: The anchor to resolve
        cfg: Application configuration
        client: Optional shared HTTP client

    Returns:
        ResolvedReference with text on success or error on failure
    """
    try:
        return await _resolve_or_raise(anchor, cfg, client)
    except ReferenceResolutionError as exc:
        log_event(
            logger,
            f"Unable to load reference data for mnemonic [{anchor.label}]: {exc}",
            level=logging.WARNING,
            event="reference_failed",
            mnemonic=anchor.label,
            url=anchor.target_url,
            error_type=type(exc).__name__,
        )
        return ResolvedReference(mnemonic=anchor.label, text=None, error=exc)


async def _resolve_or_raise(
    anchor: AnchorReference,
    cfg: AppConfig,
    client: httpx.AsyncClient | None,
) -> ResolvedReference:
    url = anchor.target_url
    try:
        result = await asyncio.wait_for(
            fetch_json(url, cfg.fetch, client=client),
            timeout=cfg.references.fetch_timeout_seconds,
        )
    except asyncio.TimeoutError as exc:
        raise NetworkFailure(
            f"Fetch exceeded {cfg.references.fetch_timeout_seconds}s budget", url
        ) from exc

    if result.error or result.text is None:
        raise NetworkFailure(result.error or "Empty response", url, result.status_code)

    item = decode_payload(result.text, url)
    kind = classify_publication(item["articleClasses"], cfg.references)
    text = apply_strategy(kind, item["content"])
    logger.debug(
        "Parsed reference [%s] as %s: %s", anchor.label, kind.value, truncate_text(text)
    )
    return ResolvedReference(mnemonic=anchor.label, text=text, kind=kind)
