"""Tests for YAML configuration loading and logging setup."""

from __future__ import annotations

import asyncio
import json
import logging

import pytest

from wol_scraper.config import (
    AppConfig,
    FetchConfig,
    LoggingConfig,
    get_base_url,
    load_config,
)
from wol_scraper.logging_utils import document_scope, log_event, setup_logging, truncate_text


def test_load_config_defaults_without_path():
    cfg = load_config(None)
    assert cfg == AppConfig()
    assert cfg.references.fetch_timeout_seconds == 30.0
    assert cfg.references.max_concurrency is None


def test_load_config_merges_yaml_over_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "fetch:\n"
        "  retries: 5\n"
        "references:\n"
        "  fetch_timeout_seconds: 7.5\n"
        "  max_concurrency: 4\n"
        "unknown_section:\n"
        "  ignored: true\n",
        encoding="utf-8",
    )

    cfg = load_config(str(path))

    assert cfg.fetch.retries == 5
    assert cfg.fetch.base_url == "https://wol.jw.org"
    assert cfg.references.fetch_timeout_seconds == 7.5
    assert cfg.references.max_concurrency == 4
    assert cfg.references.watchtower_marker == "pub-w"
    assert cfg.logging.level == "INFO"


def test_load_config_accepts_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(str(path)) == AppConfig()


def test_load_config_rejects_unknown_section_keys(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("references:\n  max_concurency: 4\n", encoding="utf-8")
    with pytest.raises(ValueError, match="max_concurency"):
        load_config(str(path))


@pytest.mark.parametrize(
    "body",
    [
        "fetch: 3\n",
        "fetch:\n  retries: -1\n",
        "references:\n  fetch_timeout_seconds: 0\n",
        "references:\n  max_concurrency: 0\n",
        "- not a mapping\n",
    ],
)
def test_load_config_rejects_invalid_values(tmp_path, body):
    path = tmp_path / "config.yaml"
    path.write_text(body, encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(str(path))


def test_environment_overrides(monkeypatch, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("logging:\n  level: WARNING\n", encoding="utf-8")
    monkeypatch.setenv("WOL_BASE_URL", "https://mirror.example.org/")
    monkeypatch.setenv("WOL_LOG_LEVEL", "DEBUG")

    assert get_base_url(FetchConfig()) == "https://mirror.example.org"
    assert load_config(str(path)).logging.level == "DEBUG"
    assert load_config(None).logging.level == "DEBUG"


def test_environment_defaults(monkeypatch, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("logging:\n  level: WARNING\n", encoding="utf-8")
    monkeypatch.delenv("WOL_BASE_URL", raising=False)
    monkeypatch.delenv("WOL_LOG_LEVEL", raising=False)

    assert get_base_url(FetchConfig(base_url="https://wol.jw.org/")) == "https://wol.jw.org"
    assert load_config(str(path)).logging.level == "WARNING"


def test_setup_logging_uses_configured_level_even_with_environment_set(tmp_path, monkeypatch):
    monkeypatch.setenv("WOL_LOG_LEVEL", "DEBUG")
    logger = setup_logging(LoggingConfig(level="ERROR", console=False), tmp_path)
    assert logger.level == logging.ERROR
    logger.handlers = []


def test_setup_logging_writes_jsonl_events(tmp_path, monkeypatch):
    monkeypatch.delenv("WOL_LOG_LEVEL", raising=False)
    cfg = LoggingConfig(level="INFO", console=False, file=True, format="jsonl", filename="run.jsonl")

    logger = setup_logging(cfg, tmp_path)
    log_event(
        logging.getLogger("wol_scraper.references.dedup"),
        "References resolved",
        event="references_complete",
        distinct=3,
        failed=1,
    )
    for handler in logger.handlers:
        handler.flush()
        handler.close()

    lines = (tmp_path / "run.jsonl").read_text(encoding="utf-8").splitlines()
    record = json.loads(lines[-1])
    assert record["message"] == "References resolved"
    assert record["logger"] == "wol_scraper.references.dedup"
    assert record["event"] == "references_complete"
    assert record["distinct"] == 3
    assert record["failed"] == 1
    logger.handlers = []


def test_setup_logging_without_file_has_no_file_handler(tmp_path):
    logger = setup_logging(LoggingConfig(console=True, file=False), tmp_path)
    assert not any(isinstance(h, logging.FileHandler) for h in logger.handlers)
    assert not (tmp_path / "run.jsonl").exists()
    logger.handlers = []


def test_truncate_text():
    assert truncate_text("short") == "short"
    assert truncate_text("x" * 10, max_chars=4) == "xxxx...(truncated)"


def test_document_scope_tags_records_and_tasks(tmp_path, monkeypatch):
    monkeypatch.delenv("WOL_LOG_LEVEL", raising=False)
    logger = setup_logging(LoggingConfig(console=False, file=True, filename="doc.jsonl"), tmp_path)
    child = logging.getLogger("wol_scraper.scrapers.bible_index")

    async def work():
        child.info("inside")
        await asyncio.create_task(_log_later(child))

    with document_scope("https://wol.jw.org/es/wol/b/r4/lp-s/nwtsty/19/70"):
        asyncio.run(work())
    child.info("outside")
    for handler in logger.handlers:
        handler.flush()
        handler.close()

    records = [json.loads(line) for line in (tmp_path / "doc.jsonl").read_text(encoding="utf-8").splitlines()]
    assert [r["message"] for r in records] == ["inside", "from task", "outside"]
    assert [r["document"] for r in records] == [
        "https://wol.jw.org/es/wol/b/r4/lp-s/nwtsty/19/70",
        "https://wol.jw.org/es/wol/b/r4/lp-s/nwtsty/19/70",
        None,
    ]
    logger.handlers = []


async def _log_later(logger):
    logger.info("from task")
