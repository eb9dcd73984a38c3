"""
Command-line interface for the crawler.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse

from webcrawler.errors import ConfigError
from webcrawler.models import (
    DEFAULT_MAX_PAGES,
    DEFAULT_MAX_TASKS,
    DEFAULT_TIMEOUT_S,
    DEFAULT_USER_AGENT,
    CrawlConfig,
    CrawlResult,
    PageEvent,
    default_worker_count,
)
from webcrawler.session import CrawlSession
from webcrawler.store import FolderStore

logger = logging.getLogger(__name__)

MAX_TASKS_LIMIT = 50


def print_scan_line(event: PageEvent, scanned: int, max_pages: int) -> None:
    """Print single scan result line."""
    if event.ok:
        line = f"  → {event.status_code} {event.url} (+{event.new_links} links)"
    else:
        line = f"  ✗ ERROR {event.url}: {event.error.message}"
    sys.stderr.write(f"[{scanned}/{max_pages}]{line}\n")
    sys.stderr.flush()


def print_summary(result: CrawlResult) -> None:
    """Print crawl summary to stderr."""
    sys.stderr.write("=" * 50 + "\n")
    sys.stderr.write("CRAWL SUMMARY\n")
    sys.stderr.write("=" * 50 + "\n\n")

    sys.stderr.write(f"Root URL:               {result.root_url}\n")
    sys.stderr.write(f"Pages fetched:          {result.pages_fetched}\n")
    sys.stderr.write(f"Pages admitted:         {result.pages_admitted}\n")
    sys.stderr.write(f"Pages failed:           {len(result.errors)}\n\n")

    error_counts = result.error_counts
    if error_counts:
        sys.stderr.write("Errors by type:\n")
        for kind, count in sorted(error_counts.items()):
            sys.stderr.write(f"  {kind}: {count}\n")
    else:
        sys.stderr.write("No errors encountered.\n")

    sys.stderr.write("\n")


def generate_output_path(root_url: str) -> Path:
    """Generate output path: crawls/{hostname}_{datetime}.json"""
    parsed = urlparse(root_url)
    hostname = parsed.hostname or "unknown"
    # Sanitize hostname for filename (replace dots with underscores)
    hostname_safe = hostname.replace(".", "_")
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return Path("crawls") / f"{hostname_safe}_{timestamp}.json"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webcrawler",
        description="Crawl a web graph breadth-first from a root URL and output JSON results.",
    )
    parser.add_argument("root_url", help="Root URL to start crawling from (e.g. https://example.com)")
    parser.add_argument(
        "--max-tasks",
        type=int,
        default=DEFAULT_MAX_TASKS,
        help=f"Max simultaneous fetches, capped at {MAX_TASKS_LIMIT} (default: {DEFAULT_MAX_TASKS})",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=DEFAULT_MAX_PAGES,
        help=f"Max number of pages to visit (default: {DEFAULT_MAX_PAGES})",
    )
    parser.add_argument(
        "--n-workers",
        type=int,
        default=None,
        help="Number of worker threads (default: available parallelism)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT_S,
        help=f"Request timeout in seconds (default: {DEFAULT_TIMEOUT_S:g})",
    )
    parser.add_argument("--user-agent", default=DEFAULT_USER_AGENT, help="User-Agent header")
    parser.add_argument("--output-dir", help="Save every fetched page into this folder")
    parser.add_argument("--out", help="Output file path, or '-' for stdout (default: auto-generated in crawls/)")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    parser.add_argument("--verbose", action="store_true", help="Show progress and summary")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> CrawlConfig:
    max_tasks = args.max_tasks
    if max_tasks > MAX_TASKS_LIMIT:
        logger.warning("--max-tasks %d capped at %d", max_tasks, MAX_TASKS_LIMIT)
        max_tasks = MAX_TASKS_LIMIT
    return CrawlConfig(
        root_url=args.root_url,
        max_tasks=max_tasks,
        max_pages=args.max_pages,
        worker_count=args.n_workers if args.n_workers is not None else default_worker_count(),
        timeout_s=args.timeout,
        user_agent=args.user_agent,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the crawler CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(threadName)s %(name)s: %(message)s",
    )

    config = config_from_args(args)
    store = FolderStore(args.output_dir).store if args.output_dir else None
    session = CrawlSession(config, store=store)

    try:
        session.start()
    except ConfigError as e:
        sys.stderr.write(f"error: {e}\n")
        return 2

    if args.verbose:
        sys.stderr.write(f"Starting crawl from: {config.root_url}\n")
        sys.stderr.write(f"Max pages: {config.max_pages}\n\n")

    for scanned, event in enumerate(session.stream(), start=1):
        if args.verbose:
            print_scan_line(event, scanned, config.max_pages)

    result = session.result

    # Print summary if verbose
    if args.verbose:
        sys.stderr.write("\n")
        print_summary(result)

    # Output JSON
    payload = {
        "root_url": result.root_url,
        "state": result.state.value,
        "pages_fetched": result.pages_fetched,
        "pages_admitted": result.pages_admitted,
        "pages": [event.to_dict() for event in result.pages],
    }
    json_text = json.dumps(payload, ensure_ascii=False, indent=2 if args.pretty else None)

    if args.out == "-":
        print(json_text)
    else:
        # Auto-generate path if not specified
        output_path = Path(args.out) if args.out else generate_output_path(config.root_url)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json_text, encoding="utf-8")
        if args.verbose:
            sys.stderr.write(f"Results written to: {output_path}\n")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
