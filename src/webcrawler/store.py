"""
Page persistence.
"""
from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Union
from urllib.parse import urlsplit

from webcrawler.errors import StoreError
from webcrawler.normalizer import normalize_url

logger = logging.getLogger(__name__)


def discard(url: str, body: bytes) -> None:
    """Store that keeps nothing."""


class FolderStore:
    """
    Save each page into a folder: ``<root>/<host>/<digest>.html``.

    The digest is taken over the normalized URL, so equivalent URLs map to
    the same file.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def path_for(self, url: str) -> Path:
        key = normalize_url(url)
        host = urlsplit(key).hostname or "unknown"
        # Sanitize hostname for directory name
        host_safe = host.replace(":", "_")
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]
        return self.root / host_safe / f"{digest}.html"

    def store(self, url: str, body: bytes) -> None:
        path = self.path_for(url)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(body)
        except OSError as e:
            raise StoreError(f"could not write {path}: {e}") from e
        logger.debug("stored %s -> %s", url, path)
