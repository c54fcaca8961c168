from __future__ import annotations

import logging

from bs4 import BeautifulSoup, Tag

from ..core.errors import SelectionNotFoundError

logger = logging.getLogger(__name__)


def select_or_raise(soup: BeautifulSoup | Tag, selector: str) -> list[Tag]:
    """Select elements that the page is required to contain.

    Raises:
        SelectionNotFoundError: If the selector matches nothing
    """
    selection = soup.select(selector)
    if not selection:
        logger.error("No selection found for selector [%s]", selector)
        raise SelectionNotFoundError(f"No selection found for selector [{selector}]")
    return selection


def top_level_matches(soup: BeautifulSoup | Tag, selector: str) -> list[Tag]:
    """Select elements, dropping any match nested inside another match."""
    matches = soup.select(selector)
    matched_ids = {id(tag) for tag in matches}
    return [
        tag
        for tag in matches
        if not any(id(parent) in matched_ids for parent in tag.parents)
    ]
