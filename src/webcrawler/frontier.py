"""
Thread-safe frontier for the crawl engine.

Holds the FIFO queue of admitted URLs awaiting a fetch attempt and the set
of URL keys ever admitted. Admission checks dedup and the page budget in a
single critical section so neither can be raced past.
"""
from __future__ import annotations

import enum
import logging
from collections import deque
from threading import Lock
from typing import Deque, Dict, NamedTuple, Optional, Set

from webcrawler.normalizer import INVALID_URL_KEY, normalize_url

logger = logging.getLogger(__name__)


class Admission(enum.Enum):
    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    BUDGET_EXHAUSTED = "budget_exhausted"


class QueuedURL(NamedTuple):
    url: str
    key: str


class Frontier:
    """
    Queue of admitted URLs plus the seen set.

    ``seen`` only grows. ``admitted_count`` never exceeds ``max_pages``.
    The frontier knows nothing about in-flight work; draining is decided by
    the dispatcher.
    """

    def __init__(self, max_pages: int):
        self.max_pages = max_pages
        self._lock = Lock()
        self._queue: Deque[QueuedURL] = deque()
        # Unparsable URLs collapse onto the sentinel key and are rejected
        # as duplicates.
        self._seen: Set[str] = {INVALID_URL_KEY}
        self._admitted_count = 0

    def try_admit(self, raw_url: str, base: Optional[str] = None) -> Admission:
        key = normalize_url(raw_url, base)
        with self._lock:
            if key in self._seen:
                return Admission.DUPLICATE
            if self._admitted_count >= self.max_pages:
                return Admission.BUDGET_EXHAUSTED
            self._seen.add(key)
            self._admitted_count += 1
            self._queue.append(QueuedURL(raw_url.strip(), key))
            admitted = self._admitted_count

        logger.debug("admitted %s (%d/%d)", key, admitted, self.max_pages)
        return Admission.ACCEPTED

    def take(self) -> Optional[QueuedURL]:
        """Pop the oldest admitted URL, or None when the queue is empty."""
        with self._lock:
            if not self._queue:
                return None
            return self._queue.popleft()

    def is_empty(self) -> bool:
        with self._lock:
            return not self._queue

    @property
    def admitted_count(self) -> int:
        with self._lock:
            return self._admitted_count

    def get_stats(self) -> Dict[str, int]:
        """Return stats: queue size, admitted count, seen count."""
        with self._lock:
            return {
                "queue_size": len(self._queue),
                "admitted_count": self._admitted_count,
                # Sentinel is not a real URL
                "seen_count": len(self._seen) - 1,
            }
