"""
Page scrapers built on the reference resolution engine.

Each scraper locates the anchors of its page type and hands them to
the engine as ordered sections. wol_pages finds this week's pages when
no explicit page is given.
"""

from .bible_index import (
    extract_bible_references,
    extract_references_from_links,
    is_valid_wol_bible_book_url,
)
from .watchtower import extract_article_contents, parse_question
from .wol_pages import (
    build_default_links,
    extract_weekly_bible_read,
    fetch_this_week_meeting_html,
    fetch_this_week_watchtower_html,
)

__all__ = [
    "build_default_links",
    "extract_article_contents",
    "extract_bible_references",
    "extract_references_from_links",
    "extract_weekly_bible_read",
    "fetch_this_week_meeting_html",
    "fetch_this_week_watchtower_html",
    "is_valid_wol_bible_book_url",
    "parse_question",
]
