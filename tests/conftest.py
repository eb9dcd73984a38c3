import threading
import time
from typing import Dict, List, Optional

import pytest

from webcrawler.errors import NonSuccessStatus
from webcrawler.models import FetchResponse


class FakeWeb:
    """In-memory web graph standing in for the fetcher and the extractor."""

    def __init__(
        self,
        graph: Dict[str, List[str]],
        failures: Optional[Dict[str, Exception]] = None,
        delay: float = 0.0,
    ) -> None:
        self.graph = graph
        self.failures = failures or {}
        self.delay = delay
        self.calls: List[str] = []
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def fetch(self, url: str) -> FetchResponse:
        with self._lock:
            self.calls.append(url)
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if url in self.failures:
                raise self.failures[url]
            if url not in self.graph:
                raise NonSuccessStatus(404, url)
            body = "\n".join(self.graph[url]).encode("utf-8")
            return FetchResponse(status_code=200, body=body)
        finally:
            with self._lock:
                self.active -= 1

    @staticmethod
    def extract_links(body: bytes, base_url: str) -> List[str]:
        return body.decode("utf-8").split()


@pytest.fixture
def fake_web():
    return FakeWeb
