import pytest

from webcrawler import CrawlConfig, CrawlSession, SessionState, iter_crawl, run_crawl
from webcrawler.errors import ConfigError, ConnectionFailed, FetchTimeout, SessionError, StoreError

ROOT = "http://example.test/"
A = "http://example.test/a"
B = "http://example.test/b"
C = "http://example.test/c"


def _config(**overrides) -> CrawlConfig:
    settings = {"root_url": ROOT, "max_tasks": 4, "max_pages": 100, "worker_count": 4}
    settings.update(overrides)
    return CrawlConfig(**settings)


def test_page_reachable_by_two_paths_is_fetched_once(fake_web) -> None:
    web = fake_web({
        ROOT: [A, B],
        A: [C, B + "#frag", "http://EXAMPLE.test/b"],
        B: [C, ROOT],
        C: [A],
    })

    result = run_crawl(_config(), fetch=web.fetch, extract_links=web.extract_links)

    assert result.state is SessionState.COMPLETED
    assert sorted(web.calls) == sorted([ROOT, A, B, C])
    assert result.visited == frozenset({ROOT, A, B, C})
    assert result.pages_fetched == 4
    assert result.errors == ()


def test_budget_is_never_exceeded(fake_web) -> None:
    graph = {ROOT: [f"http://example.test/p{i}" for i in range(30)]}
    for i in range(30):
        graph[f"http://example.test/p{i}"] = [f"http://example.test/p{i}/q{j}" for j in range(5)]
    web = fake_web(graph, delay=0.005)

    result = run_crawl(
        _config(max_pages=7, max_tasks=4, worker_count=8),
        fetch=web.fetch,
        extract_links=web.extract_links,
    )

    assert len(web.calls) == 7
    assert result.pages_admitted == 7
    assert result.pages_fetched + len(result.errors) == 7


def test_concurrent_fetches_never_exceed_max_tasks(fake_web) -> None:
    graph = {ROOT: [f"http://example.test/p{i}" for i in range(20)]}
    graph.update({f"http://example.test/p{i}": [] for i in range(20)})
    web = fake_web(graph, delay=0.02)

    result = run_crawl(
        _config(max_tasks=3, worker_count=10),
        fetch=web.fetch,
        extract_links=web.extract_links,
    )

    assert result.pages_fetched == 21
    assert web.peak <= 3


def test_single_page_budget_stops_after_root(fake_web) -> None:
    web = fake_web({ROOT: [f"http://example.test/p{i}" for i in range(50)]})

    result = run_crawl(_config(max_pages=1), fetch=web.fetch, extract_links=web.extract_links)

    assert web.calls == [ROOT]
    assert result.pages_fetched == 1
    assert result.pages_admitted == 1
    assert result.state is SessionState.COMPLETED


def test_unreachable_root_completes_with_one_error(fake_web) -> None:
    web = fake_web({ROOT: [A, B]}, failures={ROOT: ConnectionFailed("connection refused")})

    result = run_crawl(_config(), fetch=web.fetch, extract_links=web.extract_links)

    assert result.state is SessionState.COMPLETED
    assert result.pages_fetched == 0
    assert web.calls == [ROOT]
    assert result.pages_admitted == 1
    assert len(result.errors) == 1
    assert result.errors[0].url == ROOT
    assert result.errors[0].kind == "connection_failed"
    assert result.visited == frozenset()


def test_fetch_order_is_breadth_first_with_one_task(fake_web) -> None:
    web = fake_web({ROOT: [A, B], A: [C], B: [], C: []})

    run_crawl(_config(max_tasks=1, worker_count=4), fetch=web.fetch, extract_links=web.extract_links)

    assert web.calls == [ROOT, A, B, C]


def test_deep_chain_is_not_cut_short_by_an_empty_queue(fake_web) -> None:
    chain = [ROOT] + [f"http://example.test/level{i}" for i in range(10)]
    web = fake_web({url: chain[i + 1:i + 2] for i, url in enumerate(chain)}, delay=0.005)

    result = run_crawl(_config(worker_count=6), fetch=web.fetch, extract_links=web.extract_links)

    assert web.calls == chain
    assert result.pages_fetched == len(chain)


def test_page_failures_are_isolated(fake_web) -> None:
    web = fake_web(
        {ROOT: [A, B, "http://example.test/missing"], B: [C], C: []},
        failures={A: FetchTimeout("timed out")},
    )

    result = run_crawl(_config(), fetch=web.fetch, extract_links=web.extract_links)

    assert result.visited == frozenset({ROOT, B, C})
    assert {(e.url, e.kind) for e in result.errors} == {
        (A, "timeout"),
        ("http://example.test/missing", "http_status"),
    }
    assert web.calls.count(A) == 1


def test_unexpected_extractor_error_is_recorded(fake_web) -> None:
    web = fake_web({ROOT: [A, B], A: [], B: []})

    def extract(body: bytes, base_url: str):
        if base_url == A:
            raise RuntimeError("parser exploded")
        return web.extract_links(body, base_url)

    result = run_crawl(_config(), fetch=web.fetch, extract_links=extract)

    assert result.visited == frozenset({ROOT, B})
    assert [(e.url, e.kind) for e in result.errors] == [(A, "RuntimeError")]


def test_store_failure_is_recorded_but_links_are_followed(fake_web) -> None:
    web = fake_web({ROOT: [A], A: []})
    stored = []

    def store(url: str, body: bytes) -> None:
        if url == ROOT:
            raise StoreError("disk full")
        stored.append(url)

    result = run_crawl(_config(), fetch=web.fetch, extract_links=web.extract_links, store=store)

    assert stored == [A]
    assert result.visited == frozenset({A})
    assert [(e.url, e.kind) for e in result.errors] == [(ROOT, "store")]


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_tasks": 0},
        {"max_pages": 0},
        {"worker_count": 0},
        {"max_pages": True},
        {"root_url": "not a url"},
        {"root_url": "ftp://example.test/"},
        {"root_url": "http:///nohost"},
    ],
)
def test_invalid_config_aborts_before_fetching(fake_web, overrides) -> None:
    web = fake_web({ROOT: []})
    session = CrawlSession(_config(**overrides), fetch=web.fetch, extract_links=web.extract_links)

    with pytest.raises(ConfigError):
        session.run()

    assert session.state is SessionState.ABORTED
    assert session.result is None
    assert web.calls == []


def test_session_cannot_be_restarted(fake_web) -> None:
    web = fake_web({ROOT: []})
    session = CrawlSession(_config(), fetch=web.fetch, extract_links=web.extract_links)

    result = session.run()

    assert session.state is SessionState.COMPLETED
    assert session.result is result
    with pytest.raises(SessionError):
        session.start()
    with pytest.raises(SessionError):
        list(session.stream())


def test_stream_yields_one_event_per_page(fake_web) -> None:
    web = fake_web({ROOT: [A, B], A: [], B: []}, failures={B: ConnectionFailed("reset")})

    events = list(iter_crawl(_config(), fetch=web.fetch, extract_links=web.extract_links))

    assert events[0].url == ROOT
    assert events[0].new_links == 2
    assert {event.url for event in events} == {ROOT, A, B}
    failed = [event for event in events if not event.ok]
    assert [(event.url, event.error.kind) for event in failed] == [(B, "connection_failed")]


def test_iter_crawl_rejects_bad_config_immediately(fake_web) -> None:
    web = fake_web({ROOT: []})

    with pytest.raises(ConfigError):
        iter_crawl(_config(max_tasks=0), fetch=web.fetch, extract_links=web.extract_links)
