"""
Cross-reference index extraction for Bible chapter pages.

A chapter page of the study edition lists, per verse section, the
publications that cite or explain it. This module collects those
anchors, resolves them through the reference engine (one fetch per
distinct mnemonic per page) and returns the verse text alongside its
references.

Example of valid links:
    https://wol.jw.org/es/wol/b/r4/lp-s/nwtsty/19/70
    https://wol.jw.org/en/wol/b/r1/lp-e/nwtsty/2/1
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from typing import Any
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from ..config import AppConfig
from ..core.errors import ScraperError, SelectionNotFoundError
from ..core.types import SHARED_REFERENCES_KEY, Section
from ..fetch.fetcher import build_client, fetch_html
from ..logging_utils import document_scope, log_event
from ..references.engine import resolve_document
from ..references.resolver import anchor_from_tag
from ..references.strategies import clean_text, extract_bible_study_text
from .dom import top_level_matches

logger = logging.getLogger(__name__)

WOL_HOSTNAME = "wol.jw.org"
SECTIONS_SELECTOR = ".section:not(:nth-child(1))"
SECTION_ANCHORS_SELECTOR = ".group.index.collapsible .sx a"
SECTION_TITLE_SELECTOR = "h3.title"


@dataclass
class BiblePassageEntry:
    """References attached to one verse section of a chapter.

    Attributes:
        citation: The section title (e.g. the verse citation)
        scripture: Text of the verses the section covers
        references: Ordered {mnemonic, refContents} entries
    """
    citation: str
    scripture: str
    references: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"citation": self.citation, "scripture": self.scripture, "references": self.references}


@dataclass
class BibleChapterReferences:
    """All references of one chapter page."""

    entries: list[BiblePassageEntry] = field(default_factory=list)
    shared_references: dict[str, str] = field(default_factory=dict)
    link: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.link is not None:
            data["link"] = self.link
        data["entries"] = [entry.to_dict() for entry in self.entries]
        data[SHARED_REFERENCES_KEY] = dict(self.shared_references)
        return data


@dataclass
class LinkError:
    link: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"link": self.link, "error": self.error}


@dataclass
class BibleReferencesReport:
    """Outcome of extracting several chapter pages; failures do not stop the others."""

    results: list[BibleChapterReferences] = field(default_factory=list)
    errors: list[LinkError] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [result.to_dict() for result in self.results],
            "errors": [error.to_dict() for error in self.errors],
        }


def is_valid_wol_bible_book_url(url: str) -> bool:
    """Check whether a URL points to a chapter of the Bible study edition.

    A valid URL has the shape
    `https://wol.jw.org/{lang}/wol/b/r{n}/lp-{lang}/nwtsty/{book}/{chapter}`.
    """
    logger.debug("Checking if URL is a valid WOL Bible book URL: %s", url)
    try:
        parsed = urlparse(url)
    except ValueError:
        logger.warning("Failed to parse URL: %s", url)
        return False

    if parsed.hostname != WOL_HOSTNAME:
        logger.debug("URL is not from %s, skipping: %s", WOL_HOSTNAME, url)
        return False

    parts = parsed.path.split("/")
    if len(parts) != 9:
        logger.warning("Invalid URL path parts length: %d (expected 9)", len(parts))
        return False
    if parts[0] != "":
        logger.warning("Invalid URL path: %s (expected a leading slash)", parsed.path)
        return False
    if len(parts[1]) != 2:
        logger.warning("Invalid language code: %s (expected 2 letters)", parts[1])
        return False
    if not parts[5].startswith("lp"):
        logger.warning("Invalid language publication part: %s (expected to start with 'lp')", parts[5])
        return False
    if parts[6] != "nwtsty":
        logger.warning("Invalid publication part: %s (expected 'nwtsty')", parts[6])
        return False
    if not (_is_number(parts[7]) and _is_number(parts[8])):
        logger.warning("Invalid book/chapter parts: %s, %s (expected digits)", parts[7], parts[8])
        return False

    logger.info("URL is a valid WOL Bible book URL: %s", url)
    return True


def _is_number(value: str) -> bool:
    return value.isascii() and value.isdigit()


def _strip_mnemonic_separators(text: str) -> str:
    return clean_text(text).replace(",", "").replace(";", "")


def normalize_mnemonics(soup: BeautifulSoup) -> None:
    """Rewrite index anchor texts into standalone mnemonics, in place.

    Separators are dropped. An anchor whose text ended in a comma is
    followed by an anchor that omits the book code ("Mat. 5:3," then
    "7"), so the follower inherits it ("Mat. 7").
    """
    for anchor in soup.select(f"{SECTIONS_SELECTOR} {SECTION_ANCHORS_SELECTOR}"):
        current = clean_text(anchor.get_text())
        cleaned = _strip_mnemonic_separators(current)
        if "," in current:
            follower = anchor.find_next_sibling()
            if follower is not None:
                book_code = cleaned.split(" ")[0]
                follower.string = f"{book_code} {_strip_mnemonic_separators(follower.get_text())}"
        anchor.string = cleaned


def pick_sections(soup: BeautifulSoup, cfg: AppConfig) -> list[Section]:
    """Collect the verse sections of a chapter page and their anchors.

    Raises:
        SelectionNotFoundError: If a section has no data-key
        AnchorStructureError: If an index anchor has no href
    """
    sections = []
    for element in soup.select(SECTIONS_SELECTOR):
        key = element.get("data-key")
        if not key:
            raise SelectionNotFoundError("Found a verse section without a data-key attribute.")
        title = element.select_one(SECTION_TITLE_SELECTOR)
        anchors = [anchor_from_tag(tag, cfg) for tag in element.select(SECTION_ANCHORS_SELECTOR)]
        sections.append(
            Section(key=key, anchors=anchors, title=clean_text(title.get_text()) if title else "")
        )
    logger.debug("Found [%d] sections to process.", len(sections))
    return sections


def extract_scripture(soup: BeautifulSoup, key: str) -> str:
    """Read the verse text belonging to a section key."""
    texts = [
        extract_bible_study_text(element, soup)
        for element in top_level_matches(soup, f'[id*="{_quote_attribute(key)}"]')
    ]
    return "\n".join(text for text in texts if text)


def _quote_attribute(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


async def extract_bible_references(
    html: str,
    cfg: AppConfig,
    client: httpx.AsyncClient | None = None,
) -> BibleChapterReferences:
    """Extract the verse sections and resolved references of a chapter page.

    Args:
        html: The chapter page HTML
        cfg: Application configuration
        client: Optional shared HTTP client for reference fetches

    Returns:
        Entries in section order plus the shared references table
    """
    logger.info("Starting to parse Bible references")
    soup = BeautifulSoup(html, "html.parser")
    normalize_mnemonics(soup)
    sections = pick_sections(soup, cfg)

    resolution = await resolve_document(sections, cfg, client=client)

    chapter = BibleChapterReferences(shared_references=resolution.shared_references)
    for section, resolved in zip(sections, resolution.sections):
        chapter.entries.append(
            BiblePassageEntry(
                citation=section.title,
                scripture=extract_scripture(soup, section.key),
                references=[ref.to_dict() for ref in resolved.references],
            )
        )
    return chapter


async def extract_references_from_links(links: list[str], cfg: AppConfig) -> BibleReferencesReport:
    """Extract Bible references from several chapter pages.

    Pages are downloaded concurrently and processed one after the other;
    each page is its own resolution scope. A page that fails to download
    or parse is reported under errors.
    """
    logger.info("Starting to extract references from %d links", len(links))
    report = BibleReferencesReport()

    async with build_client(cfg.fetch) as client:
        pages = await asyncio.gather(*(fetch_html(link, cfg.fetch, client=client) for link in links))

        for link, page in zip(links, pages):
            if not page.ok:
                _register_error(report, link, page.error or "empty page")
                continue
            try:
                with document_scope(link):
                    chapter = await extract_bible_references(page.text, cfg, client=client)
            except Exception as exc:  # noqa: BLE001
                _register_error(report, link, _describe_failure(exc))
                continue
            chapter.link = link
            report.results.append(chapter)
            logger.debug("Reference extraction for link [%s] was successful.", link)

    log_event(
        logger,
        "Finished processing all reference links",
        event="bible_links_complete",
        results=len(report.results),
        errors=len(report.errors),
    )
    return report


def _register_error(report: BibleReferencesReport, link: str, reason: str) -> None:
    message = f"Error processing link [{link}] due to: [{reason}]"
    logger.warning(message)
    report.errors.append(LinkError(link=link, error=message))


def _describe_failure(exc: Exception) -> str:
    if isinstance(exc, ScraperError):
        return str(exc)
    return f"{type(exc).__name__}: {exc}"
