"""
Dispatcher: concurrency slots, in-flight accounting and termination.

Workers call next_task() to reserve a slot and take a URL, admit() for every
link they discover, and complete() exactly once per task. The crawl is
finished when the frontier queue is empty and nothing is in flight; since a
worker admits its links before completing, no discovered URL can be missed
by that check.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional, Set

from webcrawler.frontier import Admission, Frontier, QueuedURL
from webcrawler.models import CrawlResult, PageError, PageEvent, SessionState

logger = logging.getLogger(__name__)


class Dispatcher:
    def __init__(
        self,
        frontier: Frontier,
        max_tasks: int,
        on_event: Optional[Callable[[PageEvent], None]] = None,
        on_finish: Optional[Callable[[], None]] = None,
    ):
        self.frontier = frontier
        self.max_tasks = max_tasks
        self._on_event = on_event
        self._on_finish = on_finish

        self._slots = threading.BoundedSemaphore(max_tasks)
        self._cond = threading.Condition()
        self._finished = False
        self._in_flight = 0
        self._peak_in_flight = 0
        self._dispatched = 0

        # Result records, only mutated under self._cond
        self._visited: Set[str] = set()
        self._pages_fetched = 0
        self._errors: List[PageError] = []
        self._pages: List[PageEvent] = []

    @property
    def finished(self) -> bool:
        with self._cond:
            return self._finished

    @property
    def in_flight(self) -> int:
        with self._cond:
            return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        with self._cond:
            return self._peak_in_flight

    def is_drained(self) -> bool:
        with self._cond:
            return self._in_flight == 0 and self.frontier.is_empty()

    def admit(self, raw_url: str, base: Optional[str] = None) -> Admission:
        admission = self.frontier.try_admit(raw_url, base)
        if admission is Admission.ACCEPTED:
            with self._cond:
                self._cond.notify_all()
        return admission

    def next_task(self) -> Optional[QueuedURL]:
        """
        Block until a slot and a URL are both available.

        Returns None once the crawl has finished. A worker holding a slot
        while the queue is momentarily empty gives the slot back before
        waiting for more work.
        """
        while True:
            self._slots.acquire()
            with self._cond:
                if self._finished:
                    self._slots.release()
                    return None

                task = self.frontier.take()
                if task is not None:
                    self._in_flight += 1
                    self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
                    self._dispatched += 1
                    logger.info(
                        "Visiting %s (%d/%d)", task.url, self._dispatched, self.frontier.max_pages
                    )
                    return task

                if self._in_flight == 0:
                    self._finish_locked()
                    self._slots.release()
                    return None

            # Queue is empty but in-flight fetches may still admit links.
            self._slots.release()
            with self._cond:
                self._cond.wait_for(self._work_or_done_locked)

    def complete(self, task: QueuedURL, event: Optional[PageEvent]) -> None:
        """
        Record the outcome of ``task`` and give its slot back.

        ``event`` is None only when the worker was interrupted; the slot is
        still released.
        """
        try:
            with self._cond:
                if event is not None:
                    self._record_locked(event)
                self._in_flight -= 1
                if self._in_flight == 0 and self.frontier.is_empty():
                    self._finish_locked()
                self._cond.notify_all()
        finally:
            self._slots.release()

    def build_result(self, root_url: str, state: SessionState) -> CrawlResult:
        with self._cond:
            return CrawlResult(
                root_url=root_url,
                state=state,
                visited=frozenset(self._visited),
                pages_fetched=self._pages_fetched,
                pages_admitted=self.frontier.admitted_count,
                errors=tuple(self._errors),
                pages=tuple(self._pages),
            )

    def _work_or_done_locked(self) -> bool:
        return self._finished or self._in_flight == 0 or not self.frontier.is_empty()

    def _record_locked(self, event: PageEvent) -> None:
        self._pages.append(event)
        if event.ok:
            self._visited.add(event.key)
            self._pages_fetched += 1
        else:
            self._errors.append(event.error)
        if self._on_event is not None:
            self._on_event(event)

    def _finish_locked(self) -> None:
        if self._finished:
            return
        self._finished = True
        stats = self.frontier.get_stats()
        logger.info(
            "Crawl finished: %d fetched, %d failed, %d admitted, %d seen, %d queued",
            self._pages_fetched,
            len(self._errors),
            stats["admitted_count"],
            stats["seen_count"],
            stats["queue_size"],
        )
        self._cond.notify_all()
        if self._on_finish is not None:
            self._on_finish()
