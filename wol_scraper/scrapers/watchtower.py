"""
Watchtower study article extraction.

Turns a study article page into its questions, the paragraphs each
question covers and the scripture references cited in those
paragraphs. Every cited anchor is replaced in the paragraph text by a
footnote marker (`Mat. 5:3 [^1]`) numbered across the whole article.
References are resolved through the reference engine, so a scripture
cited in several paragraphs is fetched once and stored once in the
shared references table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import re
from typing import Any

import httpx
from bs4 import BeautifulSoup

from ..config import AppConfig
from ..core.errors import SelectionNotFoundError
from ..core.types import SHARED_REFERENCES_KEY, UNABLE_TO_EXTRACT_REFERENCE, Section
from ..references.engine import resolve_document
from ..references.resolver import anchor_from_tag
from ..references.strategies import clean_text
from .dom import select_or_raise

logger = logging.getLogger(__name__)

ARTICLE_NUMBER_SELECTOR = "p.contextTtl"
ARTICLE_TITLE_SELECTOR = "h1"
ARTICLE_THEME_SCRIPTURE_SELECTOR = "p.themeScrp"
ARTICLE_TOPIC_SELECTOR = "p.desc"
QUESTION_SELECTOR = "p.qu"
RELATED_PARAGRAPH_SELECTOR = 'p[data-rel-pid*="[{pid}]"]'
PARAGRAPH_REFERENCE_SELECTOR = "a.b"
TEACH_BLOCK_HEADLINE_SELECTOR = ".blockTeach h2"
TEACH_BLOCK_POINTS_SELECTOR = ".blockTeach li p"

_P_NUMBERS_RE = re.compile(r"^\s*(\d+(?:[\s,-]*\d+)*?)\.\s*")
_QUESTION_LABEL_RE = re.compile(r"\b([a-zA-Z])\)\s*")


@dataclass
class QuestionPart:
    text: str
    label: str | None = None

    def to_dict(self) -> dict[str, str]:
        data = {"text": self.text}
        if self.label is not None:
            data["label"] = self.label
        return data


@dataclass
class QuestionData:
    p_numbers: list[int] = field(default_factory=list)
    parts: list[QuestionPart] = field(default_factory=list)


@dataclass
class ParagraphData:
    """Paragraph text with footnote markers and the footnotes' contents."""

    content: str
    references: dict[int, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"content": self.content, "references": {str(k): v for k, v in self.references.items()}}


@dataclass
class ContentData:
    p_numbers: list[int]
    question_parts: list[QuestionPart]
    paragraphs: list[ParagraphData] = field(default_factory=list)

    @property
    def question_text_if_single(self) -> str | None:
        if len(self.question_parts) == 1:
            return self.question_parts[0].text
        return None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "pNumbers": self.p_numbers,
            "questionParts": [part.to_dict() for part in self.question_parts],
        }
        if self.question_text_if_single is not None:
            data["questionTextIfSingle"] = self.question_text_if_single
        data["paragraphs"] = [paragraph.to_dict() for paragraph in self.paragraphs]
        return data


@dataclass
class TeachBlock:
    headline: str
    points: list[str] = field(default_factory=list)


@dataclass
class WatchtowerArticle:
    article_number: str
    article_title: str
    article_theme_scripture: str
    article_topic: str
    contents: list[ContentData] = field(default_factory=list)
    teach_block: TeachBlock = field(default_factory=lambda: TeachBlock(headline=""))
    shared_references: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "articleNumber": self.article_number,
            "articleTitle": self.article_title,
            "articleThemeScrip": self.article_theme_scripture,
            "articleTopic": self.article_topic,
            "contents": [content.to_dict() for content in self.contents],
            "teachBlock": {"headline": self.teach_block.headline, "points": self.teach_block.points},
            SHARED_REFERENCES_KEY: dict(self.shared_references),
        }


def parse_question(text: str) -> QuestionData:
    """Split a study question into covered paragraph numbers and labelled parts.

    Examples:
        >>> parse_question("3-5. a) Why? b) How?").p_numbers
        [3, 4, 5]
    """
    question = clean_text(text)
    data = QuestionData()

    remaining = question
    match = _P_NUMBERS_RE.match(question)
    if match:
        for token in re.split(r"\s*,\s*", match.group(1)):
            if "-" in token:
                start, _, end = (piece.strip() for piece in token.partition("-"))
                if start.isdigit() and end.isdigit() and int(start) <= int(end):
                    data.p_numbers.extend(range(int(start), int(end) + 1))
            elif token.strip().isdigit():
                data.p_numbers.append(int(token.strip()))
        remaining = question[match.end():]

    labels = list(_QUESTION_LABEL_RE.finditer(remaining))
    if labels:
        for index, label in enumerate(labels):
            end = labels[index + 1].start() if index + 1 < len(labels) else len(remaining)
            data.parts.append(QuestionPart(text=remaining[label.end():end].strip(), label=label.group(1)))
    elif remaining.strip():
        data.parts.append(QuestionPart(text=remaining.strip()))

    return data


def extract_teach_block(soup: BeautifulSoup) -> TeachBlock:
    """Read the closing review block; missing blocks degrade to the sentinel headline."""
    try:
        headline = select_or_raise(soup, TEACH_BLOCK_HEADLINE_SELECTOR)[0]
    except SelectionNotFoundError as exc:
        logger.warning("Unable to extract teach block due to: %s", exc)
        return TeachBlock(headline=UNABLE_TO_EXTRACT_REFERENCE)
    points = [clean_text(point.get_text()) for point in soup.select(TEACH_BLOCK_POINTS_SELECTOR)]
    return TeachBlock(headline=clean_text(headline.get_text()), points=points)


async def extract_article_contents(
    html: str,
    cfg: AppConfig,
    client: httpx.AsyncClient | None = None,
) -> WatchtowerArticle:
    """Extract a Watchtower study article with its resolved references.

    Args:
        html: The article page HTML
        cfg: Application configuration
        client: Optional shared HTTP client for reference fetches

    Returns:
        The structured article

    Raises:
        SelectionNotFoundError: If a question has no data-pid
        AnchorStructureError: If a cited anchor has no href
    """
    soup = BeautifulSoup(html, "html.parser")

    article = WatchtowerArticle(
        article_number=_select_text(soup, ARTICLE_NUMBER_SELECTOR),
        article_title=_select_text(soup, ARTICLE_TITLE_SELECTOR),
        article_theme_scripture=_select_text(soup, ARTICLE_THEME_SCRIPTURE_SELECTOR),
        article_topic=_select_text(soup, ARTICLE_TOPIC_SELECTOR),
    )

    # One section per paragraph; footnote numbers index into each section's anchors.
    sections: list[Section] = []
    footnotes: list[list[int]] = []
    footnote_index = 1

    for question in soup.select(QUESTION_SELECTOR):
        pid = question.get("data-pid")
        if not pid:
            message = f"Missing data-pid for question {clean_text(question.get_text())}"
            logger.error(message)
            raise SelectionNotFoundError(message)

        logger.debug("Processing question [%s]", pid)
        question_data = parse_question(question.get_text())
        content = ContentData(p_numbers=question_data.p_numbers, question_parts=question_data.parts)

        for paragraph in soup.select(RELATED_PARAGRAPH_SELECTOR.format(pid=pid)):
            section = Section(key=f"{pid}:{len(content.paragraphs)}")
            numbers = []
            for anchor in paragraph.select(PARAGRAPH_REFERENCE_SELECTOR):
                reference = anchor_from_tag(anchor, cfg)
                anchor.replace_with(f"{reference.label} [^{footnote_index}]")
                section.anchors.append(reference)
                numbers.append(footnote_index)
                footnote_index += 1
            sections.append(section)
            footnotes.append(numbers)
            content.paragraphs.append(ParagraphData(content=clean_text(paragraph.get_text())))

        article.contents.append(content)

    resolution = await resolve_document(sections, cfg, client=client)
    paragraphs = [paragraph for content in article.contents for paragraph in content.paragraphs]
    for paragraph, numbers, resolved in zip(paragraphs, footnotes, resolution.sections):
        paragraph.references = {
            number: entry.ref_contents for number, entry in zip(numbers, resolved.references)
        }
    article.shared_references = resolution.shared_references
    article.teach_block = extract_teach_block(soup)
    return article


def _select_text(soup: BeautifulSoup, selector: str) -> str:
    return clean_text(" ".join(element.get_text() for element in soup.select(selector)))
