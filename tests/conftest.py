"""Shared fixtures: a scripted stand-in for the reference JSON fetcher."""

from __future__ import annotations

import asyncio
import json

import pytest

from wol_scraper.config import AppConfig
from wol_scraper.core.types import AnchorReference, Section
from wol_scraper.fetch.fetcher import FetchResult
from wol_scraper.references import resolver

BASE_URL = "https://wol.jw.org"


def payload(content: str, article_classes: str = "pub-nwtsty") -> str:
    return json.dumps({"title": "Ref", "items": [{"content": content, "articleClasses": article_classes}]})


def anchor(label: str, path: str | None = None) -> AnchorReference:
    return AnchorReference(label=label, target_url=f"{BASE_URL}{path or '/wol/bc/' + label}")


def section(key: str, *labels: str) -> Section:
    return Section(key=key, anchors=[anchor(label) for label in labels])


class FakeJsonFetch:
    """Serves scripted bodies per URL and records every call.

    Unknown URLs answer 404. A delay makes the fetch suspend first, so
    tests can control completion order.
    """

    def __init__(self):
        self.bodies: dict[str, str] = {}
        self.failures: dict[str, FetchResult] = {}
        self.delays: dict[str, float] = {}
        self.calls: list[str] = []

    def serve(self, label: str, text: str, article_classes: str = "pub-nwtsty", delay: float = 0.0) -> None:
        url = anchor(label).target_url
        self.bodies[url] = payload(text, article_classes)
        self.delays[url] = delay

    def serve_raw(self, label: str, body: str) -> None:
        self.bodies[anchor(label).target_url] = body

    def fail(self, label: str, error: str = "ConnectError: refused", status_code: int | None = None) -> None:
        url = anchor(label).target_url
        self.failures[url] = FetchResult(url=url, status_code=status_code, text=None, error=error)

    def hang(self, label: str, seconds: float) -> None:
        self.serve(label, "never", delay=seconds)

    async def __call__(self, url, cfg, client=None):  # noqa: ANN001
        self.calls.append(url)
        await asyncio.sleep(self.delays.get(url, 0))
        if url in self.failures:
            return self.failures[url]
        if url in self.bodies:
            return FetchResult(url=url, status_code=200, text=self.bodies[url], error=None)
        return FetchResult(url=url, status_code=404, text=None, error="HTTP 404 Not Found")


@pytest.fixture
def fake_fetch(monkeypatch):
    fake = FakeJsonFetch()
    monkeypatch.setattr(resolver, "fetch_json", fake)
    return fake


@pytest.fixture
def cfg(monkeypatch):
    monkeypatch.delenv("WOL_BASE_URL", raising=False)
    monkeypatch.delenv("WOL_LOG_LEVEL", raising=False)
    return AppConfig()
