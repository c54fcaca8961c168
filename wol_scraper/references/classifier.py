"""Publication classification from a payload's articleClasses."""

from __future__ import annotations

import re

from ..config import ReferenceConfig
from ..core.types import PublicationKind


def classify_publication(article_classes: str, cfg: ReferenceConfig | None = None) -> PublicationKind:
    """Determine which publication template produced a payload item.

    Markers are matched as whole words, case-insensitively. Watchtower is
    tested before the Bible study edition; no match is the normal
    DEFAULT case.

    Examples:
        >>> classify_publication("foo pub-w bar")
        <PublicationKind.WATCHTOWER: 'watchtower'>
        >>> classify_publication("other")
        <PublicationKind.DEFAULT: 'default'>
    """
    cfg = cfg or ReferenceConfig()
    if not isinstance(article_classes, str):
        return PublicationKind.DEFAULT
    if _has_marker(article_classes, cfg.watchtower_marker):
        return PublicationKind.WATCHTOWER
    if _has_marker(article_classes, cfg.bible_marker):
        return PublicationKind.BIBLE_STUDY_EDITION
    return PublicationKind.DEFAULT


def _has_marker(article_classes: str, marker: str) -> bool:
    return re.search(rf"\b{re.escape(marker)}\b", article_classes, re.IGNORECASE) is not None
