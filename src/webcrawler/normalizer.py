"""
URL canonicalization for deduplication.
"""
from __future__ import annotations

from typing import Optional
from urllib.parse import urlsplit, urlunsplit

# Key shared by every URL that cannot be crawled. The frontier treats it as
# already seen, so such URLs are never admitted.
INVALID_URL_KEY = "invalid:"

ALLOWED_SCHEMES = frozenset(("http", "https"))
DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_url(raw: str, base: Optional[str] = None) -> str:
    """
    Normalize URL for deduplication and comparison.

    - Drops fragments (#...)
    - Normalizes scheme/host case
    - Removes default ports (:80, :443)
    - Keeps user:password credentials as written
    - Empty path becomes "/"
    - Sorts querystring parameters (they matter for uniqueness, order doesn't)

    Scheme-relative URLs ("//host/path") take the scheme of ``base``. Any
    other relative reference, non-http(s) scheme or unparsable input maps
    to INVALID_URL_KEY. Never raises.
    """
    if not isinstance(raw, str):
        return INVALID_URL_KEY
    raw = raw.strip()
    if not raw:
        return INVALID_URL_KEY

    try:
        parsed = urlsplit(raw)
        if not parsed.scheme and raw.startswith("//") and base:
            parsed = urlsplit(f"{urlsplit(base).scheme}:{raw}")

        scheme = parsed.scheme.lower()
        if scheme not in ALLOWED_SCHEMES:
            return INVALID_URL_KEY

        hostname = (parsed.hostname or "").lower().rstrip(".")
        if not hostname:
            return INVALID_URL_KEY
        port = parsed.port
    except ValueError:
        # Bad IPv6 literal or out-of-range port
        return INVALID_URL_KEY

    if ":" in hostname:
        hostname = f"[{hostname}]"
    if port and port != DEFAULT_PORTS[scheme]:
        netloc = f"{hostname}:{port}"
    else:
        netloc = hostname
    # Credentials select a different resource; kept verbatim
    userinfo, at, _ = parsed.netloc.rpartition("@")
    if at:
        netloc = f"{userinfo}@{netloc}"

    query = "&".join(sorted(part for part in parsed.query.split("&") if part))

    return urlunsplit((scheme, netloc, parsed.path or "/", query, ""))
