"""
Data structures shared by the crawl engine and its callers.
"""
from __future__ import annotations

import enum
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Optional, Tuple

from webcrawler.errors import ConfigError, PageFailure
from webcrawler.normalizer import INVALID_URL_KEY, normalize_url

DEFAULT_MAX_TASKS = 5
DEFAULT_MAX_PAGES = 100
DEFAULT_TIMEOUT_S = 15.0
DEFAULT_USER_AGENT = "webcrawler/1.0"


def default_worker_count() -> int:
    """Available parallelism of the host, at least one."""
    return os.cpu_count() or 1


def utc_now_iso() -> str:
    """Return current UTC time in ISO format."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


class SessionState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class CrawlConfig:
    """Immutable settings for one crawl session."""
    root_url: str
    max_tasks: int = DEFAULT_MAX_TASKS
    max_pages: int = DEFAULT_MAX_PAGES
    worker_count: int = field(default_factory=default_worker_count)
    timeout_s: float = DEFAULT_TIMEOUT_S
    user_agent: str = DEFAULT_USER_AGENT

    def validate(self) -> None:
        """
        Check the configuration.

        Raises ConfigError on anything that must stop the session before
        its first fetch.
        """
        for name in ("max_tasks", "max_pages", "worker_count"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigError(f"{name} must be an integer >= 1, got {value!r}")
        if self.timeout_s is not None and self.timeout_s <= 0:
            raise ConfigError(f"timeout_s must be positive, got {self.timeout_s!r}")

        if normalize_url(self.root_url or "") == INVALID_URL_KEY:
            raise ConfigError(f"Invalid root URL: {self.root_url!r}")


@dataclass(frozen=True, slots=True)
class FetchResponse:
    """Successful response handed back by a fetcher."""
    status_code: int
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class PageError:
    """A per-page failure recorded in the crawl result."""
    url: str
    kind: str
    message: str

    @classmethod
    def from_exception(cls, url: str, exc: BaseException) -> "PageError":
        if isinstance(exc, PageFailure):
            kind = exc.kind
        else:
            kind = type(exc).__name__
        return cls(url=url, kind=kind, message=str(exc) or type(exc).__name__)


@dataclass(frozen=True, slots=True)
class PageEvent:
    """Outcome of processing one admitted URL."""
    url: str
    key: str
    scanned_at: str
    status_code: Optional[int] = None
    new_links: int = 0
    error: Optional[PageError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "url": self.url,
            "key": self.key,
            "scanned_at": self.scanned_at,
            "status_code": self.status_code,
            "new_links": self.new_links,
            "ok": self.ok,
        }
        if self.error is not None:
            payload["error"] = {"kind": self.error.kind, "message": self.error.message}
        return payload


@dataclass(frozen=True, slots=True)
class CrawlResult:
    """Final, read-only summary of a crawl session."""
    root_url: str
    state: SessionState
    visited: FrozenSet[str] = frozenset()
    pages_fetched: int = 0
    pages_admitted: int = 0
    errors: Tuple[PageError, ...] = ()
    pages: Tuple[PageEvent, ...] = ()

    @property
    def error_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for error in self.errors:
            counts[error.kind] = counts.get(error.kind, 0) + 1
        return counts
