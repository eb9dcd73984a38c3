"""
Worker thread for the crawl engine.
Each worker takes a URL, fetches it, admits the links it finds, stores the
page and reports back to the dispatcher.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Optional

from webcrawler.dispatcher import Dispatcher
from webcrawler.errors import PageFailure
from webcrawler.frontier import Admission, QueuedURL
from webcrawler.models import FetchResponse, PageError, PageEvent, utc_now_iso

logger = logging.getLogger(__name__)

FetchFn = Callable[[str], FetchResponse]
ExtractFn = Callable[[bytes, str], Iterable[str]]
StoreFn = Callable[[str, bytes], None]


class Worker(threading.Thread):
    """
    Crawler worker thread.
    Runs until the dispatcher reports the crawl finished. A page failure is
    recorded against its URL and never ends the loop.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        fetch: FetchFn,
        extract_links: ExtractFn,
        store: StoreFn,
        name: str = "Worker",
    ):
        super().__init__(name=name, daemon=True)
        self.dispatcher = dispatcher
        self.fetch = fetch
        self.extract_links = extract_links
        self.store = store

    def run(self) -> None:
        logger.debug("%s started", self.name)
        while True:
            task = self.dispatcher.next_task()
            if task is None:
                break
            event: Optional[PageEvent] = None
            try:
                event = self.process(task)
            finally:
                self.dispatcher.complete(task, event)
        logger.debug("%s stopped", self.name)

    def process(self, task: QueuedURL) -> PageEvent:
        scanned_at = utc_now_iso()
        status_code = None
        new_links = 0
        error: Optional[PageError] = None
        try:
            response = self.fetch(task.url)
            status_code = response.status_code

            for link in self.extract_links(response.body, task.url):
                admission = self.dispatcher.admit(link, task.url)
                if admission is Admission.ACCEPTED:
                    new_links += 1
                elif admission is Admission.BUDGET_EXHAUSTED:
                    break

            self.store(task.url, response.body)
        except PageFailure as exc:
            logger.warning("%s failed: %s", task.url, exc)
            error = PageError.from_exception(task.url, exc)
        except Exception as exc:
            logger.exception("Unexpected error processing %s", task.url)
            error = PageError.from_exception(task.url, exc)

        return PageEvent(
            url=task.url,
            key=task.key,
            scanned_at=scanned_at,
            status_code=status_code,
            new_links=new_links,
            error=error,
        )
