"""
HTTP content fetching against the library website.

This module provides two async fetchers built on httpx:
1. fetch_json: One-shot JSON fetch used for cross-reference payloads (no retry)
2. fetch_html: Page fetch with retry logic used for top-level documents

Both report failures as data on FetchResult instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass
import asyncio
import logging
import time

import httpx

from ..config import FetchConfig, get_base_url

logger = logging.getLogger(__name__)

SLOW_FETCH_SECONDS = 10.0


@dataclass
class FetchResult:
    """Result of an HTTP fetch operation.

    Either text will be populated (success) or error will be populated (failure),
    but never both. status_code may be None for network-level failures.

    Attributes:
        url: The URL that was fetched
        status_code: HTTP status code, or None if request failed before getting response
        text: The response body text, or None on error
        error: Error message if fetch failed, None on success
        elapsed: Seconds spent on the request
    """
    url: str
    status_code: int | None
    text: str | None
    error: str | None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None and self.text is not None


def build_headers(cfg: FetchConfig, accept: str) -> dict[str, str]:
    """Build browser-like request headers for the given content type."""
    return {
        "User-Agent": cfg.user_agent,
        "Accept": accept,
        "Accept-Language": cfg.accept_language,
        "Accept-Encoding": "gzip, deflate, br",
        "Referer": get_base_url(cfg),
    }


def build_client(cfg: FetchConfig) -> httpx.AsyncClient:
    """Create an AsyncClient configured for the library website."""
    return httpx.AsyncClient(
        timeout=cfg.timeout_seconds,
        follow_redirects=True,
        trust_env=cfg.trust_env,
    )


async def fetch_json(
    url: str,
    cfg: FetchConfig,
    client: httpx.AsyncClient | None = None,
) -> FetchResult:
    """Fetch a JSON document with a single GET request.

    The body is returned undecoded; callers decide how to treat bodies
    that are not valid JSON.

    Args:
        url: The URL to fetch
        cfg: Fetch configuration (headers, timeout, proxy settings)
        client: Optional shared client; a temporary one is created otherwise

    Returns:
        FetchResult with the body text on 2xx, or error message otherwise
    """
    return await _fetch(url, cfg, "application/json", client)


async def fetch_html(
    url: str,
    cfg: FetchConfig,
    client: httpx.AsyncClient | None = None,
) -> FetchResult:
    """Fetch an HTML page, retrying failed attempts.

    Args:
        url: The URL to fetch
        cfg: Fetch configuration; cfg.retries sets the number of retry attempts
        client: Optional shared client; a temporary one is created otherwise

    Returns:
        FetchResult with HTML text on success or error message on failure
    """
    result = FetchResult(url=url, status_code=None, text=None, error="not attempted")
    for attempt in range(cfg.retries + 1):
        result = await _fetch(url, cfg, "text/html", client)
        if result.ok:
            return result
        if attempt < cfg.retries:
            # Linear backoff: 0.5s, 1.0s, 1.5s...
            await asyncio.sleep(0.5 * (attempt + 1))
    return result


async def _fetch(
    url: str,
    cfg: FetchConfig,
    accept: str,
    client: httpx.AsyncClient | None,
) -> FetchResult:
    headers = build_headers(cfg, accept)
    started = time.perf_counter()
    logger.debug("Sending GET request to [%s]", url)

    try:
        if client is None:
            async with build_client(cfg) as own_client:
                resp = await own_client.get(url, headers=headers)
        else:
            resp = await client.get(url, headers=headers)
    except Exception as exc:  # noqa: BLE001
        elapsed = time.perf_counter() - started
        error = f"{type(exc).__name__}: {exc}"
        logger.error("Request to [%s] failed after [%.4f] seconds: %s", url, elapsed, error)
        return FetchResult(url=url, status_code=None, text=None, error=error, elapsed=elapsed)

    elapsed = time.perf_counter() - started
    if not resp.is_success:
        error = f"HTTP {resp.status_code} {resp.reason_phrase}"
        logger.error(
            "Failed to fetch [%s] with status [%s] after [%.4f] seconds",
            url,
            resp.status_code,
            elapsed,
        )
        return FetchResult(url=url, status_code=resp.status_code, text=None, error=error, elapsed=elapsed)

    if elapsed > SLOW_FETCH_SECONDS:
        logger.warning("Fetching [%s] took [%.4f] seconds", url, elapsed)

    text = resp.text
    logger.info(
        "Received content from [%s] with status code %s in [%.4f] seconds. Content length: [%d]",
        url,
        resp.status_code,
        elapsed,
        len(text),
    )
    return FetchResult(url=url, status_code=resp.status_code, text=text, error=None, elapsed=elapsed)
