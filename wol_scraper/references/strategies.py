"""
HTML-to-text extraction strategies for referenced publications.

One strategy exists per publication kind:
1. Watchtower: body paragraphs only, paragraph numbers removed
2. Bible study edition: verse text without footnote chrome, soft line breaks kept apart
3. Default: full text with repeated line breaks collapsed
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Tag

from ..core.types import ExtractionStrategy, PublicationKind

NBSP = "\u00a0"

_LINE_BREAKS_RE = re.compile(r"\n+")
_SPACE_AROUND_BREAK_RE = re.compile(r"\s\n|\n\s")


def clean_text(text: object) -> str:
    """Trim text and replace non-breaking spaces with regular spaces.

    Non-string values clean to an empty string.
    """
    if not isinstance(text, str):
        return ""
    return text.strip().replace(NBSP, " ")


def collapse_line_breaks(text: object) -> str:
    """Collapse runs of consecutive line breaks into a single one."""
    if not isinstance(text, str):
        return ""
    return _LINE_BREAKS_RE.sub("\n", text)


def extract_watchtower_text(content: str) -> str:
    """Extract the body paragraphs of a Watchtower study article.

    Args:
        content: HTML fragment of the referenced article

    Returns:
        Cleaned text of every `p.sb` paragraph, one per line, in document order
    """
    soup = BeautifulSoup(content, "html.parser")
    paragraphs = []
    for paragraph in soup.select("p.sb"):
        for marker in paragraph.select(".parNum"):
            marker.decompose()
        paragraphs.append(clean_text(paragraph.get_text()))
    return "\n".join(paragraphs)


def extract_bible_study_text(content: str | Tag, soup: BeautifulSoup | None = None) -> str:
    """Extract scripture text from the study edition of the Bible.

    Accepts either raw HTML, parsed into a fresh tree, or an element of a
    tree the caller already holds. In the second form the owning soup is
    required to create the spacer nodes, and the element is mutated in
    place.

    Footnote and back-reference anchors are dropped. A spacer span is
    inserted after each soft-line (`.sl`) and size-variant (`.sz`) node
    so that removing markup does not fuse the words on either side.

    Args:
        content: HTML string, or a Tag scoped to the passage to read
        soup: The BeautifulSoup document owning `content` when it is a Tag

    Returns:
        Cleaned text with whitespace next to line breaks removed

    Raises:
        ValueError: If a Tag is given without its owning soup
    """
    if isinstance(content, str):
        soup = BeautifulSoup(content, "html.parser")
        context: Tag = soup
    else:
        if soup is None:
            raise ValueError("Extracting from an existing element requires its BeautifulSoup document.")
        context = content

    for chrome in context.select(".fn, .b"):
        chrome.decompose()
    for boundary in context.select(".sl, .sz"):
        spacer = soup.new_tag("span")
        spacer.string = " "
        boundary.insert_after(spacer)

    return _SPACE_AROUND_BREAK_RE.sub("\n", clean_text(context.get_text()))


def extract_default_text(content: str) -> str:
    """Extract the full text of any other publication."""
    soup = BeautifulSoup(content, "html.parser")
    return collapse_line_breaks(clean_text(soup.get_text()))


def pick_strategy(kind: PublicationKind) -> ExtractionStrategy:
    """Get the extraction strategy for a publication kind.

    Raises:
        ValueError: If kind is not a PublicationKind
    """
    if kind is PublicationKind.WATCHTOWER:
        return extract_watchtower_text
    if kind is PublicationKind.BIBLE_STUDY_EDITION:
        return extract_bible_study_text
    if kind is PublicationKind.DEFAULT:
        return extract_default_text
    raise ValueError(f"Unsupported publication kind: {kind}")


def apply_strategy(kind: PublicationKind, content: str) -> str:
    """Extract plain text from a payload's content fragment for the given kind."""
    return pick_strategy(kind)(content)
