"""
Exception taxonomy for the crawl engine.

Only ConfigError ever escapes run_crawl. PageFailure subclasses are caught
at the worker boundary and recorded against the URL that caused them.
"""
from __future__ import annotations

from typing import Optional


class CrawlerError(Exception):
    """Base class for all crawler errors."""


class ConfigError(CrawlerError):
    """Invalid session configuration, detected before the first fetch."""


class SessionError(CrawlerError):
    """A crawl session was used outside its lifecycle."""


class PageFailure(CrawlerError):
    """A recoverable failure isolated to a single page."""

    kind = "page"


class FetchError(PageFailure):
    kind = "fetch"


class FetchTimeout(FetchError):
    kind = "timeout"


class ConnectionFailed(FetchError):
    kind = "connection_failed"


class NonSuccessStatus(FetchError):
    kind = "http_status"

    def __init__(self, status_code: int, url: Optional[str] = None):
        self.status_code = status_code
        message = f"HTTP {status_code}"
        if url:
            message += f" for {url}"
        super().__init__(message)


class TransportError(FetchError):
    kind = "transport"


class StoreError(PageFailure):
    kind = "store"
