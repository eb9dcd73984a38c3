"""
Link extraction from HTML pages.
"""
from __future__ import annotations

from typing import List
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, SoupStrainer

# SoupStrainer to parse only <a> tags (faster link extraction)
LINK_STRAINER = SoupStrainer("a", href=True)


def extract_links(body: bytes, base_url: str) -> List[str]:
    """
    Return absolute http(s) targets of all <a href> tags, in document order.

    Relative hrefs are dropped, not resolved. Malformed markup yields fewer
    links, never an error. ``base_url`` is accepted for interface parity
    with other extractors.
    """
    if not body:
        return []
    soup = BeautifulSoup(body, "lxml", parse_only=LINK_STRAINER)
    links = []
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if _is_absolute(href):
            links.append(href)
    return links


def _is_absolute(href: str) -> bool:
    try:
        parsed = urlsplit(href)
    except ValueError:
        return False
    return parsed.scheme.lower() in ("http", "https") and bool(parsed.netloc)
