"""Tests for single-anchor resolution and its failure taxonomy."""

from __future__ import annotations

import asyncio
import json

import pytest
from bs4 import BeautifulSoup

from conftest import anchor
from wol_scraper.core.errors import (
    AnchorStructureError,
    NetworkFailure,
    ParseFailure,
    PayloadShapeInvalid,
)
from wol_scraper.core.types import PublicationKind
from wol_scraper.references.resolver import (
    anchor_from_tag,
    build_anchor_reference,
    resolve_anchor,
    validate_payload,
)


def test_build_anchor_reference_strips_language_prefix():
    ref = build_anchor_reference("Mat. 5:3", "/es/wol/bc/r4/lp-s/1102024201/0/0", "https://wol.jw.org/")
    assert ref.label == "Mat. 5:3"
    assert ref.target_url == "https://wol.jw.org/wol/bc/r4/lp-s/1102024201/0/0"


def test_build_anchor_reference_rejects_missing_href():
    with pytest.raises(AnchorStructureError):
        build_anchor_reference("Mat. 5:3", None, "https://wol.jw.org")
    with pytest.raises(AnchorStructureError):
        build_anchor_reference("Mat. 5:3", "", "https://wol.jw.org")


def test_anchor_from_tag_uses_cleaned_text_and_base_url(cfg, monkeypatch):
    monkeypatch.setenv("WOL_BASE_URL", "https://mirror.example.org/")
    tag = BeautifulSoup('<a href="/en/wol/bc/r1/lp-e/1/2"> Gen. 1:1 </a>', "html.parser").a
    ref = anchor_from_tag(tag, cfg)
    assert ref.label == "Gen. 1:1"
    assert ref.target_url == "https://mirror.example.org/wol/bc/r1/lp-e/1/2"


def test_anchor_from_tag_without_href_raises(cfg):
    tag = BeautifulSoup("<a>Gen. 1:1</a>", "html.parser").a
    with pytest.raises(AnchorStructureError):
        anchor_from_tag(tag, cfg)


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"items": []},
        {"items": "nope"},
        {"items": [{"content": "", "articleClasses": "pub-w"}]},
        {"items": [{"content": "<p>x</p>"}]},
        {"items": [{"content": "<p>x</p>", "articleClasses": 3}]},
        ["not", "an", "object"],
    ],
)
def test_validate_payload_rejects_bad_shapes(payload):
    with pytest.raises(PayloadShapeInvalid):
        validate_payload(payload)


def test_validate_payload_returns_first_item():
    item = {"content": "<p>x</p>", "articleClasses": "pub-w"}
    assert validate_payload({"title": "t", "items": [item, {}]}) is item


def test_resolve_anchor_classifies_and_extracts(cfg, fake_fetch):
    fake_fetch.serve("A", '<p class="sb"><span class="parNum">4</span>Watch.</p>', article_classes="pub-w")

    result = asyncio.run(resolve_anchor(anchor("A"), cfg))

    assert result.ok
    assert result.mnemonic == "A"
    assert result.text == "Watch."
    assert result.kind is PublicationKind.WATCHTOWER
    assert fake_fetch.calls == [anchor("A").target_url]


def test_resolve_anchor_reports_network_failure(cfg, fake_fetch):
    fake_fetch.fail("A", error="HTTP 500 Internal Server Error", status_code=500)

    result = asyncio.run(resolve_anchor(anchor("A"), cfg))

    assert result.text is None
    assert isinstance(result.error, NetworkFailure)
    assert result.error.status_code == 500


def test_resolve_anchor_reports_parse_failure(cfg, fake_fetch):
    fake_fetch.serve_raw("A", "<html>not json</html>")

    result = asyncio.run(resolve_anchor(anchor("A"), cfg))

    assert isinstance(result.error, ParseFailure)


def test_resolve_anchor_reports_invalid_payload(cfg, fake_fetch):
    fake_fetch.serve_raw("A", json.dumps({"title": "t", "items": []}))

    result = asyncio.run(resolve_anchor(anchor("A"), cfg))

    assert isinstance(result.error, PayloadShapeInvalid)
    assert result.error.url == anchor("A").target_url


def test_resolve_anchor_times_out_hung_fetch(cfg, fake_fetch):
    cfg.references.fetch_timeout_seconds = 0.05
    fake_fetch.hang("A", seconds=5)

    result = asyncio.run(resolve_anchor(anchor("A"), cfg))

    assert isinstance(result.error, NetworkFailure)
    assert "budget" in str(result.error)


def test_resolve_anchor_reports_too_deeply_nested_body_as_parse_failure(cfg, fake_fetch):
    fake_fetch.serve_raw("A", "[" * 200000 + "]" * 200000)

    result = asyncio.run(resolve_anchor(anchor("A"), cfg))

    assert result.text is None
    assert isinstance(result.error, ParseFailure)
