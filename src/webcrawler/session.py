"""
Crawl session: wires the frontier, dispatcher and worker pool together for
one crawl and hands back the result.
"""
from __future__ import annotations

import logging
import queue
from typing import Iterator, List, Optional

from webcrawler.dispatcher import Dispatcher
from webcrawler.errors import ConfigError, SessionError
from webcrawler.extractor import extract_links as default_extract_links
from webcrawler.fetcher import HttpFetcher
from webcrawler.frontier import Frontier
from webcrawler.models import CrawlConfig, CrawlResult, PageEvent, SessionState
from webcrawler.store import discard
from webcrawler.worker import ExtractFn, FetchFn, StoreFn, Worker

logger = logging.getLogger(__name__)


class CrawlSession:
    """
    One crawl from a root URL to termination.

    Lifecycle: IDLE -> RUNNING -> COMPLETED, or IDLE -> ABORTED when the
    configuration is rejected. A session is never restarted.

    Collaborators default to an HttpFetcher built from the config, the
    BeautifulSoup link extractor and a store that discards pages.
    """

    def __init__(
        self,
        config: CrawlConfig,
        fetch: Optional[FetchFn] = None,
        extract_links: Optional[ExtractFn] = None,
        store: Optional[StoreFn] = None,
    ):
        self.config = config
        self._fetch = fetch
        self._extract_links = extract_links or default_extract_links
        self._store = store or discard

        self._state = SessionState.IDLE
        self._events: "queue.Queue[Optional[PageEvent]]" = queue.Queue()
        self._workers: List[Worker] = []
        self._result: Optional[CrawlResult] = None
        self._http_fetcher: Optional[HttpFetcher] = None
        self.frontier: Optional[Frontier] = None
        self.dispatcher: Optional[Dispatcher] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def result(self) -> Optional[CrawlResult]:
        """The final result, available once the session has completed."""
        return self._result

    def start(self) -> None:
        """Validate the config, seed the frontier with the root and start the workers."""
        if self._state is not SessionState.IDLE:
            raise SessionError(f"session already {self._state.value}")

        try:
            self.config.validate()
        except ConfigError as e:
            self._state = SessionState.ABORTED
            logger.error("Crawl aborted: %s", e)
            raise

        config = self.config
        fetch = self._fetch
        if fetch is None:
            self._http_fetcher = HttpFetcher(timeout_s=config.timeout_s, user_agent=config.user_agent)
            fetch = self._http_fetcher.fetch

        self.frontier = Frontier(config.max_pages)
        self.dispatcher = Dispatcher(
            self.frontier,
            config.max_tasks,
            on_event=self._events.put,
            on_finish=lambda: self._events.put(None),
        )
        # Seeding before any worker runs: an empty frontier with nothing in
        # flight reads as a finished crawl.
        self.dispatcher.admit(config.root_url)

        if config.worker_count > config.max_tasks:
            logger.debug(
                "%d workers share %d task slots; extra workers will idle",
                config.worker_count,
                config.max_tasks,
            )
        logger.info(
            "Starting crawl from %s (max_pages=%d, max_tasks=%d, workers=%d)",
            config.root_url,
            config.max_pages,
            config.max_tasks,
            config.worker_count,
        )

        self._state = SessionState.RUNNING
        self._workers = [
            Worker(
                self.dispatcher,
                fetch,
                self._extract_links,
                self._store,
                name=f"Worker-{i}",
            )
            for i in range(config.worker_count)
        ]
        for worker in self._workers:
            worker.start()

    def stream(self) -> Iterator[PageEvent]:
        """
        Yield one PageEvent per processed page, in completion order.

        Starts the session if needed. When the generator is exhausted the
        session is COMPLETED and ``result`` is set.
        """
        if self._state is SessionState.IDLE:
            self.start()
        elif self._state is not SessionState.RUNNING:
            raise SessionError(f"session already {self._state.value}")

        while True:
            event = self._events.get()
            if event is None:
                break
            yield event

        for worker in self._workers:
            worker.join()
        if self._http_fetcher is not None:
            self._http_fetcher.close()
        self._state = SessionState.COMPLETED
        self._result = self.dispatcher.build_result(self.config.root_url, self._state)

    def run(self) -> CrawlResult:
        for _ in self.stream():
            pass
        return self._result


def run_crawl(
    config: CrawlConfig,
    fetch: Optional[FetchFn] = None,
    extract_links: Optional[ExtractFn] = None,
    store: Optional[StoreFn] = None,
) -> CrawlResult:
    """
    Crawl from ``config.root_url`` and return once the crawl is complete.

    Raises ConfigError if the configuration is invalid; page failures are
    reported in the result instead.
    """
    return CrawlSession(config, fetch, extract_links, store).run()


def iter_crawl(
    config: CrawlConfig,
    fetch: Optional[FetchFn] = None,
    extract_links: Optional[ExtractFn] = None,
    store: Optional[StoreFn] = None,
) -> Iterator[PageEvent]:
    """
    Streaming variant of run_crawl, yielding one event per page.

    The session is started before returning, so ConfigError is raised here
    rather than on first iteration.
    """
    session = CrawlSession(config, fetch, extract_links, store)
    session.start()
    return session.stream()
