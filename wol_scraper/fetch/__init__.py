"""
Page and payload fetching.

This package handles HTTP access to the library website.
"""

from .fetcher import FetchResult, build_client, build_headers, fetch_html, fetch_json

__all__ = [
    "FetchResult",
    "build_client",
    "build_headers",
    "fetch_html",
    "fetch_json",
]
