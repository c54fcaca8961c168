"""
Command orchestration for the WOL scraper.

This module coordinates each command's workflow:
1. Set up logging
2. Obtain the page HTML (file on disk, download, or this week's page
   found from the site root)
3. Run the scraper, which resolves references through the engine
4. Write the JSON result and print a summary

Reference failures never abort a run; they show up as sentinel text in
the output and as counts in the summary.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from rich.console import Console

from .config import AppConfig
from .core.errors import PageFetchError, ScraperError
from .core.types import SHARED_REFERENCES_KEY, UNABLE_TO_EXTRACT_REFERENCE
from .fetch.fetcher import fetch_html
from .logging_utils import document_scope, log_event, setup_logging
from .scrapers.bible_index import extract_references_from_links, is_valid_wol_bible_book_url
from .scrapers.watchtower import extract_article_contents
from .scrapers.wol_pages import build_default_links, fetch_this_week_watchtower_html

THIS_WEEK = "this-week"


class InvalidLinksError(ScraperError, ValueError):
    """Some requested links are not Bible chapter URLs of the study edition.

    Attributes:
        invalid_links: The rejected links
    """

    def __init__(self, invalid_links: list[str]):
        super().__init__(f"Some links are invalid: {', '.join(invalid_links)}")
        self.invalid_links = invalid_links


def run_bible_references(
    links: list[str] | None,
    cfg: AppConfig,
    output_path: Path | None = None,
    console: Console | None = None,
) -> dict[str, Any]:
    """Extract resolved references for Bible chapter links.

    Args:
        links: Chapter URLs of the study edition; this week's Bible reading when empty
        cfg: Application configuration
        output_path: File to write the JSON to; stdout when None
        console: Rich console for the summary

    Returns:
        The JSON-ready report

    Raises:
        InvalidLinksError: If any link is not a valid chapter URL
        ScraperError: If no links were given and this week's reading cannot be found
    """
    console = console or Console(stderr=True)
    logger = setup_logging(cfg.logging, output_path.parent if output_path else None)

    if not links:
        log_event(logger, "No links given, using this week's Bible reading", event="default_links")
        links = asyncio.run(build_default_links(cfg))

    invalid = [link for link in links if not is_valid_wol_bible_book_url(link)]
    if invalid:
        raise InvalidLinksError(invalid)

    log_event(logger, "Bible references start", event="bible_refs_start", links=len(links))
    report = asyncio.run(extract_references_from_links(links, cfg)).to_dict()

    _write_json(report, output_path, cfg)
    _render_summary(console, "Bible references", report["results"], len(report["errors"]))
    return report


def run_article(
    source: str | None,
    cfg: AppConfig,
    output_path: Path | None = None,
    console: Console | None = None,
) -> dict[str, Any]:
    """Extract a Watchtower study article from a file path or URL.

    Without a source, this week's study article is found from the site root.

    Raises:
        ScraperError: If the page cannot be downloaded or its structure is unexpected
    """
    console = console or Console(stderr=True)
    logger = setup_logging(cfg.logging, output_path.parent if output_path else None)
    log_event(logger, "Article start", event="article_start", source=source or THIS_WEEK)

    article = asyncio.run(_extract_article(source, cfg)).to_dict()

    _write_json(article, output_path, cfg)
    _render_summary(console, "Article", [article], 0)
    return article


async def _extract_article(source: str | None, cfg: AppConfig):
    if source is None:
        source = THIS_WEEK
        html = await fetch_this_week_watchtower_html(cfg)
    elif source.startswith(("http://", "https://")):
        page = await fetch_html(source, cfg.fetch)
        if not page.ok:
            raise PageFetchError(f"Unable to download [{source}]: {page.error}", source)
        html = page.text
    else:
        html = Path(source).read_text(encoding="utf-8")
    with document_scope(source):
        return await extract_article_contents(html, cfg)


def _write_json(data: dict[str, Any], output_path: Path | None, cfg: AppConfig) -> None:
    text = json.dumps(data, indent=cfg.output.indent, ensure_ascii=cfg.output.ensure_ascii)
    if output_path is None:
        print(text)
        return
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text + "\n", encoding="utf-8")
    logging.getLogger(__name__).info("Wrote %s", output_path)


def _render_summary(console: Console, label: str, documents: list[dict[str, Any]], errors: int) -> None:
    """Display shared/failed reference counts to the console."""
    shared = sum(len(doc.get(SHARED_REFERENCES_KEY, {})) for doc in documents)
    failed = _count_sentinels(documents)
    console.print(
        f"[bold]{label} summary[/bold]: "
        f"documents={len(documents)}, errors={errors}, shared={shared}, unresolved={failed}"
    )


def _count_sentinels(value: Any) -> int:
    if isinstance(value, str):
        return int(value == UNABLE_TO_EXTRACT_REFERENCE)
    if isinstance(value, dict):
        return sum(_count_sentinels(item) for key, item in value.items() if key != "teachBlock")
    if isinstance(value, list):
        return sum(_count_sentinels(item) for item in value)
    return 0
