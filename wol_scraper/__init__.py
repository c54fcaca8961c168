"""
WOL Scraper - structured JSON from Watchtower Online Library pages.

This package scrapes Bible chapter pages and Watchtower study articles,
resolving their cross-reference anchors to text. Each distinct
reference is fetched once per document, and references that recur are
written once into a shared references table.

Main entry point is the CLI via the `wol-scraper` command.

Example:
    $ wol-scraper bible-refs -l https://wol.jw.org/es/wol/b/r4/lp-s/nwtsty/19/70
"""

__all__ = ["__version__", "resolve_document", "resolve_document_sync", "load_config"]
__version__ = "0.1.0"

from .config import load_config
from .references.engine import resolve_document, resolve_document_sync
