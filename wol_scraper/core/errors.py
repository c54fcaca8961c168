"""
Error taxonomy for scraping and reference resolution.

Failures talking to the remote site (ReferenceResolutionError and its
subclasses) are expected at runtime and are turned into data by the
resolver. Structural errors (AnchorStructureError, SelectionNotFoundError)
mean the caller or the page markup broke an assumption and are raised.
"""

from __future__ import annotations


class ScraperError(Exception):
    """Base class for all errors raised by this package."""


class ReferenceResolutionError(ScraperError):
    """A reference could not be resolved to text.

    Attributes:
        url: The URL that was being resolved
    """

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url


class NetworkFailure(ReferenceResolutionError):
    """The fetch was rejected, timed out, or returned a non-2xx status."""

    def __init__(self, message: str, url: str | None = None, status_code: int | None = None):
        super().__init__(message, url)
        self.status_code = status_code


class ParseFailure(ReferenceResolutionError):
    """The response body was not valid JSON."""


class PayloadShapeInvalid(ReferenceResolutionError):
    """The JSON payload lacks the items, content or articleClasses it must carry."""


class AnchorStructureError(ScraperError, ValueError):
    """An anchor is missing the relative link needed to build its fetch target."""


class SelectionNotFoundError(ScraperError, LookupError):
    """A CSS selector matched nothing in a page that must contain it."""


class PageFetchError(ScraperError):
    """A page the scraper navigates through could not be downloaded.

    Attributes:
        url: The page URL
    """

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url
