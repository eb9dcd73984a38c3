"""
Breadth-first web crawler with a bounded worker pool.
Visits each normalized URL at most once, up to a page budget.
"""
from webcrawler.errors import ConfigError, CrawlerError, FetchError, StoreError
from webcrawler.models import CrawlConfig, CrawlResult, PageError, PageEvent, SessionState
from webcrawler.normalizer import normalize_url
from webcrawler.session import CrawlSession, iter_crawl, run_crawl

__version__ = "1.0.0"
__all__ = [
    "ConfigError",
    "CrawlConfig",
    "CrawlResult",
    "CrawlSession",
    "CrawlerError",
    "FetchError",
    "PageError",
    "PageEvent",
    "SessionState",
    "StoreError",
    "iter_crawl",
    "normalize_url",
    "run_crawl",
]
