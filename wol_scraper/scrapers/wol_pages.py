"""
Navigation from the library's site root to this week's pages.

The site root links to a language landing page. Its "today" link leads
to this week's meeting page, which in turn links to the Watchtower study
article and lists the weekly Bible reading. The helpers here follow those
links so commands can run without being handed explicit URLs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import re
from typing import Any
from urllib.parse import urlsplit

import httpx
from bs4 import BeautifulSoup

from ..config import AppConfig, get_base_url
from ..core.errors import NetworkFailure, PageFetchError, PayloadShapeInvalid, SelectionNotFoundError
from ..core.types import PublicationKind
from ..fetch.fetcher import build_client, fetch_html, fetch_json
from ..logging_utils import log_event
from ..references.classifier import classify_publication
from ..references.resolver import anchor_from_tag, decode_payload
from .dom import select_or_raise

logger = logging.getLogger(__name__)

_PASSAGE_FIELDS = ("url", "book", "caption", "first_chapter", "last_chapter")
_BOOK_NAME_PATTERN = re.compile(r"^(.*?)(?=\d+:)")


@dataclass
class WeeklyBibleRead:
    """The Bible reading assigned for the week.

    Attributes:
        book_name: Book name taken from the passage caption (e.g. "Salmo")
        book_number: Canonical book number
        first_chapter: First chapter of the reading
        last_chapter: Last chapter of the reading
        links: Chapter page URL for every chapter in the reading
    """
    book_name: str
    book_number: int
    first_chapter: int
    last_chapter: int
    links: list[str] = field(default_factory=list)


async def fetch_language_landing_html(cfg: AppConfig, client: httpx.AsyncClient | None = None) -> str:
    """Download the site root and follow its link to the language landing page.

    Raises:
        PageFetchError: If either page cannot be downloaded
        SelectionNotFoundError: If the root page has no usable language link
    """
    base_url = get_base_url(cfg.fetch)
    root_html = await _get_page(base_url, cfg, client)
    href = _follow_link(root_html, cfg.pages.language_link_selector, "language landing link")
    return await _get_page(f"{base_url}{href}", cfg, client)


async def fetch_this_week_meeting_html(cfg: AppConfig, client: httpx.AsyncClient | None = None) -> str:
    """Download this week's meeting page, as reached by the site's "today" link.

    Raises:
        PageFetchError: If a page on the way cannot be downloaded
        SelectionNotFoundError: If a page on the way lacks the link to follow
    """
    landing_html = await fetch_language_landing_html(cfg, client)
    logger.debug("Selecting today's navigation link")
    href = _follow_link(landing_html, cfg.pages.today_nav_selector, "today's navigation link")
    return await _get_page(f"{get_base_url(cfg.fetch)}{href}", cfg, client)


async def fetch_this_week_watchtower_html(cfg: AppConfig, client: httpx.AsyncClient | None = None) -> str:
    """Download the Watchtower study article assigned for this week.

    Raises:
        PageFetchError: If a page on the way cannot be downloaded
        SelectionNotFoundError: If a page on the way lacks the link to follow
    """
    meeting_html = await fetch_this_week_meeting_html(cfg, client)
    logger.debug("Selecting watchtower article link")
    href = _follow_link(meeting_html, cfg.pages.watchtower_link_selector, "watchtower article link")
    return await _get_page(f"{get_base_url(cfg.fetch)}{href}", cfg, client)


async def extract_weekly_bible_read(
    html: str,
    cfg: AppConfig,
    client: httpx.AsyncClient | None = None,
) -> WeeklyBibleRead:
    """Work out the chapters of the weekly Bible reading from a meeting page.

    Every reading anchor is resolved to its Bible study edition payload.
    The reading spans from the lowest first chapter to the highest last
    chapter among them, and the first payload supplies the book and the
    chapter URL pattern.

    Raises:
        SelectionNotFoundError: If the page has no reading anchors
        AnchorStructureError: If a reading anchor has no href
        ReferenceResolutionError: If a payload cannot be fetched, is not a
            Bible passage, or lacks passage fields
    """
    logger.info("Starting to extract Bible read data")
    soup = BeautifulSoup(html, "html.parser")
    anchors = select_or_raise(soup, cfg.pages.bible_read_selector)

    reading: WeeklyBibleRead | None = None
    url_path = ""
    for index, tag in enumerate(anchors):
        anchor = anchor_from_tag(tag, cfg)
        logger.debug("Processing reading anchor %d: %s", index, anchor)
        passage = await _fetch_passage(anchor.target_url, cfg, client)

        first, last = passage["first_chapter"], passage["last_chapter"]
        if reading is None:
            url_path = urlsplit(str(passage["url"])).path
            reading = WeeklyBibleRead(
                book_name=_book_name_from_caption(str(passage["caption"])),
                book_number=passage["book"],
                first_chapter=first,
                last_chapter=last,
            )
            continue
        reading.first_chapter = min(reading.first_chapter, first)
        reading.last_chapter = max(reading.last_chapter, last)

    # select_or_raise guarantees at least one anchor.
    assert reading is not None
    language_code = str(anchors[0].get("href"))[: cfg.references.href_prefix_length]
    base_url = get_base_url(cfg.fetch)
    head = url_path.rsplit("/", 1)[0]
    reading.links = [
        f"{base_url}{language_code}{head}/{chapter}"
        for chapter in range(reading.first_chapter, reading.last_chapter + 1)
    ]

    log_event(
        logger,
        "Extracted Bible read data",
        event="weekly_bible_read",
        book=reading.book_name,
        first_chapter=reading.first_chapter,
        last_chapter=reading.last_chapter,
    )
    return reading


async def build_default_links(cfg: AppConfig) -> list[str]:
    """Chapter links of this week's Bible reading, used when no links are given."""
    async with build_client(cfg.fetch) as client:
        meeting_html = await fetch_this_week_meeting_html(cfg, client)
        reading = await extract_weekly_bible_read(meeting_html, cfg, client)
    return reading.links


async def _get_page(url: str, cfg: AppConfig, client: httpx.AsyncClient | None) -> str:
    logger.info("Fetching HTML content from [%s]", url)
    page = await fetch_html(url, cfg.fetch, client=client)
    if not page.ok or page.text is None:
        raise PageFetchError(f"Unable to download [{url}]: {page.error or 'empty page'}", url)
    return page.text


def _follow_link(html: str, selector: str, description: str) -> str:
    tag = select_or_raise(BeautifulSoup(html, "html.parser"), selector)[0]
    href = tag.get("href")
    logger.debug("Value for href of %s: [%s]", description, href)
    if not href:
        message = f"No href found for {description}, website structure may have changed"
        logger.warning(message)
        raise SelectionNotFoundError(message)
    return str(href)


async def _fetch_passage(url: str, cfg: AppConfig, client: httpx.AsyncClient | None) -> dict[str, Any]:
    result = await fetch_json(url, cfg.fetch, client=client)
    if not result.ok or result.text is None:
        raise NetworkFailure(result.error or "Empty response", url, result.status_code)

    item = decode_payload(result.text, url)
    if classify_publication(item["articleClasses"], cfg.references) is not PublicationKind.BIBLE_STUDY_EDITION:
        raise PayloadShapeInvalid("Reading anchor does not point to a Bible passage.", url)
    missing = [key for key in _PASSAGE_FIELDS if item.get(key) is None]
    if missing:
        raise PayloadShapeInvalid(f"Bible passage lacks {', '.join(missing)}.", url)
    try:
        for key in ("book", "first_chapter", "last_chapter"):
            item[key] = int(item[key])
    except (TypeError, ValueError) as exc:
        raise PayloadShapeInvalid(f"Bible passage has a non-numeric {key}.", url) from exc
    return item


def _book_name_from_caption(caption: str) -> str:
    match = _BOOK_NAME_PATTERN.match(caption)
    return match.group(1).strip() if match else caption
