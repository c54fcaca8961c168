"""
Logging setup for the WOL scraper.

Console output goes through rich on stderr, so JSON written to stdout
stays clean. An optional file handler writes one JSON object per record
with any `extra=` fields attached by log_event.

Records are tagged with the document (page link or file) being scraped.
The tag lives in a context variable, so reference tasks started while a
document is being processed carry it too.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

from rich.console import Console
from rich.logging import RichHandler

from .config import LoggingConfig

ROOT_LOGGER = "wol_scraper"

_current_document: ContextVar[str | None] = ContextVar("wol_scraper_document", default=None)

# Attributes every LogRecord has; anything else came in through `extra=`.
_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {
    "message",
    "asctime",
}


def setup_logging(cfg: LoggingConfig, run_output_dir: Path | None) -> logging.Logger:
    """Configure the package logger and return it.

    Handlers from a previous call are replaced, so commands can call this
    once per run.
    """
    level = _level_from_string(cfg.level)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers = []
    logger.propagate = False

    handlers: list[logging.Handler] = []
    if cfg.console:
        console_handler = RichHandler(
            console=Console(stderr=True), rich_tracebacks=True, show_time=False, show_level=True
        )
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        handlers.append(console_handler)

    if cfg.file and run_output_dir is not None:
        run_output_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(run_output_dir / cfg.filename, encoding="utf-8")
        file_handler.setFormatter(_build_file_formatter(cfg.format))
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(level)
        handler.addFilter(DocumentFilter())
        logger.addHandler(handler)
    return logger


@contextmanager
def document_scope(document: str) -> Iterator[None]:
    """Tag records logged inside the block with the document being scraped."""
    token = _current_document.set(document)
    try:
        yield
    finally:
        _current_document.reset(token)


class DocumentFilter(logging.Filter):
    """Adds a `document` attribute unless the call site passed one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "document"):
            record.document = _current_document.get()
        return True


def log_event(logger: logging.Logger | None, message: str, level: int = logging.INFO, **fields: Any) -> None:
    """Log a message with structured fields (e.g. `event="references_complete"`)."""
    if logger is None:
        return
    logger.log(level, message, extra=fields)


def truncate_text(text: str, max_chars: int = 200) -> str:
    if len(text) <= max_chars:
        return text
    return f"{text[:max_chars]}...(truncated)"


class JsonlFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, value) for key, value in record.__dict__.items() if key not in _RECORD_ATTRS
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=True, default=str)


def _build_file_formatter(fmt: str) -> logging.Formatter:
    if fmt == "jsonl":
        return JsonlFormatter()
    return logging.Formatter("%(asctime)s %(levelname)s %(name)s [%(document)s] %(message)s")


def _level_from_string(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)
