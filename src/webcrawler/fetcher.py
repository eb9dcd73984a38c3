"""
HTTP fetching for the crawler.

Timeouts, redirects and TLS are handled here; the engine only sees a
FetchResponse or a FetchError.
"""
from __future__ import annotations

import threading
from typing import List

import requests

from webcrawler.errors import ConnectionFailed, FetchTimeout, NonSuccessStatus, TransportError
from webcrawler.models import DEFAULT_TIMEOUT_S, DEFAULT_USER_AGENT, FetchResponse


class HttpFetcher:
    """
    Fetch pages with one requests.Session per worker thread.

    Redirects are followed; any final status outside 2xx is reported as
    NonSuccessStatus.
    """

    def __init__(self, timeout_s: float = DEFAULT_TIMEOUT_S, user_agent: str = DEFAULT_USER_AGENT):
        self.timeout_s = timeout_s
        self.user_agent = user_agent
        self._local = threading.local()
        self._sessions_lock = threading.Lock()
        self._sessions: List[requests.Session] = []

    def _session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers["User-Agent"] = self.user_agent
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def close(self) -> None:
        """Close the sessions opened by every thread."""
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()

    def fetch(self, url: str) -> FetchResponse:
        try:
            resp = self._session().get(url, timeout=self.timeout_s, allow_redirects=True)
        except requests.Timeout as e:
            raise FetchTimeout(f"timed out after {self.timeout_s}s: {e}") from e
        except requests.ConnectionError as e:
            raise ConnectionFailed(str(e)) from e
        except requests.RequestException as e:
            raise TransportError(str(e)) from e

        if not 200 <= resp.status_code < 300:
            raise NonSuccessStatus(resp.status_code, url)

        return FetchResponse(
            status_code=resp.status_code,
            body=resp.content,
            headers=dict(resp.headers),
        )
