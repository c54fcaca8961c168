"""Tests for the command runners and the Typer CLI."""

from __future__ import annotations

import json
import logging

import pytest
from rich.console import Console
from typer.testing import CliRunner

from wol_scraper import runner
from wol_scraper.cli import app
from wol_scraper.core.errors import PageFetchError, ScraperError
from wol_scraper.fetch.fetcher import FetchResult
from wol_scraper.runner import InvalidLinksError, run_article, run_bible_references
from wol_scraper.scrapers.bible_index import BibleReferencesReport

ARTICLE_HTML = (
    '<p class="contextTtl">ARTÍCULO 1</p><h1>Título</h1>'
    '<p class="qu" data-pid="1">1. ¿Qué?</p>'
    '<p data-rel-pid="[1]">Texto (<a class="b" href="/es/wol/bc/A">A</a>).</p>'
    '<p data-rel-pid="[1]">Más (<a class="b" href="/es/wol/bc/A">A</a>; <a class="b" href="/es/wol/bc/B">B</a>).</p>'
)


def _quiet(cfg):
    cfg.logging.console = False
    return Console(quiet=True)


def test_run_bible_references_rejects_invalid_links(cfg):
    with pytest.raises(InvalidLinksError) as excinfo:
        run_bible_references(["https://example.org/nope"], cfg, console=_quiet(cfg))
    assert excinfo.value.invalid_links == ["https://example.org/nope"]


def test_run_article_from_file_writes_json(cfg, fake_fetch, tmp_path):
    fake_fetch.serve("A", "alpha")
    fake_fetch.fail("B")
    source = tmp_path / "article.html"
    source.write_text(ARTICLE_HTML, encoding="utf-8")
    output = tmp_path / "out" / "article.json"

    result = run_article(str(source), cfg, output_path=output, console=_quiet(cfg))

    written = json.loads(output.read_text(encoding="utf-8"))
    assert written == result
    assert written["articleTitle"] == "Título"
    assert written["sharedMnemonicReferences"] == {"A": "alpha"}
    assert written["contents"][0]["paragraphs"][1]["references"] == {
        "2": 'SEE: sharedMnemonicReferences["A"]',
        "3": "unable to extract reference",
    }


def test_run_article_from_url_reports_download_failure(cfg, monkeypatch):
    async def failing_fetch_html(url, cfg, client=None):  # noqa: ANN001
        return FetchResult(url=url, status_code=503, text=None, error="HTTP 503 Service Unavailable")

    monkeypatch.setattr(runner, "fetch_html", failing_fetch_html)

    with pytest.raises(ScraperError, match="Unable to download"):
        run_article("https://wol.jw.org/es/wol/d/r4/lp-s/2024/1", cfg, console=_quiet(cfg))


def test_run_bible_references_without_links_uses_weekly_reading(cfg, monkeypatch):
    weekly = ["https://wol.jw.org/es/wol/b/r4/lp-s/nwtsty/19/70", "https://wol.jw.org/es/wol/b/r4/lp-s/nwtsty/19/71"]
    seen: list[list[str]] = []

    async def fake_default_links(cfg):  # noqa: ANN001
        return weekly

    async def fake_extract(links, cfg):  # noqa: ANN001
        seen.append(links)
        return BibleReferencesReport()

    monkeypatch.setattr(runner, "build_default_links", fake_default_links)
    monkeypatch.setattr(runner, "extract_references_from_links", fake_extract)

    report = run_bible_references(None, cfg, console=_quiet(cfg))

    assert seen == [weekly]
    assert report == {"results": [], "errors": []}


def test_run_bible_references_validates_weekly_links(cfg, monkeypatch):
    async def fake_default_links(cfg):  # noqa: ANN001
        return ["https://example.org/odd"]

    monkeypatch.setattr(runner, "build_default_links", fake_default_links)

    with pytest.raises(InvalidLinksError):
        run_bible_references([], cfg, console=_quiet(cfg))


def test_run_article_without_source_uses_this_week_article(cfg, fake_fetch, monkeypatch):
    fake_fetch.serve("A", "alpha")
    fake_fetch.serve("B", "beta")

    async def fake_this_week(cfg):  # noqa: ANN001
        return ARTICLE_HTML

    monkeypatch.setattr(runner, "fetch_this_week_watchtower_html", fake_this_week)

    result = run_article(None, cfg, console=_quiet(cfg))

    assert result["articleTitle"] == "Título"
    assert result["sharedMnemonicReferences"] == {"A": "alpha"}

def test_count_sentinels_ignores_teach_block():
    doc = {
        "teachBlock": {"headline": "unable to extract reference"},
        "contents": [{"references": {"1": "unable to extract reference", "2": "ok"}}],
    }
    assert runner._count_sentinels(doc) == 1  # noqa: SLF001


def test_cli_bible_refs_invalid_link_exits_with_code_2(monkeypatch):
    monkeypatch.delenv("WOL_BASE_URL", raising=False)
    result = CliRunner().invoke(app, ["--log-level", "ERROR", "bible-refs", "-l", "https://example.org/x"])
    assert result.exit_code == 2


def test_cli_log_level_flag_beats_environment(monkeypatch):
    monkeypatch.setenv("WOL_LOG_LEVEL", "DEBUG")

    result = CliRunner().invoke(app, ["--log-level", "ERROR", "bible-refs", "-l", "https://example.org/x"])

    assert result.exit_code == 2
    assert logging.getLogger("wol_scraper").level == logging.ERROR
    logging.getLogger("wol_scraper").handlers = []


def test_cli_article_writes_output(fake_fetch, tmp_path, monkeypatch):
    monkeypatch.delenv("WOL_BASE_URL", raising=False)
    fake_fetch.serve("A", "alpha")
    fake_fetch.serve("B", "beta")
    source = tmp_path / "article.html"
    source.write_text(ARTICLE_HTML, encoding="utf-8")
    output = tmp_path / "article.json"

    result = CliRunner().invoke(app, ["--log-level", "ERROR", "article", str(source), "-o", str(output)])

    assert result.exit_code == 0, result.output
    assert json.loads(output.read_text(encoding="utf-8"))["sharedMnemonicReferences"] == {"A": "alpha"}


def test_cli_article_missing_pid_exits_with_code_1(fake_fetch, tmp_path):
    source = tmp_path / "broken.html"
    source.write_text('<p class="qu">1. ¿Qué?</p>', encoding="utf-8")

    result = CliRunner().invoke(app, ["--log-level", "ERROR", "article", str(source)])

    assert result.exit_code == 1


def test_cli_invalid_config_exits_with_code_2(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("references:\n  max_concurrency: 0\n", encoding="utf-8")

    result = CliRunner().invoke(app, ["--config", str(config), "article", "missing.html"])

    assert result.exit_code == 2


def test_cli_bible_refs_without_links_reports_navigation_failure(monkeypatch):
    async def unreachable(cfg):  # noqa: ANN001
        raise PageFetchError("Unable to download [https://wol.jw.org]: HTTP 503", "https://wol.jw.org")

    monkeypatch.setattr(runner, "build_default_links", unreachable)

    result = CliRunner().invoke(app, ["--log-level", "ERROR", "bible-refs"])

    assert result.exit_code == 1
