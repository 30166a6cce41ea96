"""Command-line interface for refreshing the documentation snapshot."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .cli_output import format_ingestion_summary, format_snapshot_summary, to_json
from .config import ingest_settings_from_env, load_env_files, snapshot_config_from_env
from .errors import DocsError
from .ingest import Completed, Discovered, IngestEvent, PageFailed, Progress, ingest_all
from .snapshot import SnapshotEvent, SnapshotManager


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _write_text(text: str, output: Optional[str]) -> None:
    if output is None:
        print(text)
        return
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    logging.info("Wrote %s", path)


# =============================================================================
# REFRESH COMMAND (snapshot replace)
# =============================================================================


def _parse_refresh_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="docs-refresh",
        description="Ensure a documentation snapshot exists, downloading a prebuilt one if needed.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # Use the existing snapshot or download one
  docs-refresh

  # Always download a fresh snapshot
  docs-refresh --force

  # Try a specific mirror first
  docs-refresh --source-url https://mirror.example.com/docs.parquet

  # Fall back to a local bundled copy
  docs-refresh --bundled-dir ./vendor/docs
""",
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="Snapshot file path (default: $PAGEFIND_DOCS_DB_PATH or data/docs.parquet)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Download even if a valid snapshot already exists",
    )
    parser.add_argument(
        "--source-url",
        type=str,
        nargs="+",
        default=None,
        help="Snapshot URL(s) to try in order (default: configured URLs)",
    )
    parser.add_argument(
        "--bundled-dir",
        type=str,
        default=None,
        help="Directory containing a bundled docs.parquet fallback",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Write the summary to a file instead of stdout",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output the result as JSON",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def _log_snapshot_event(event: SnapshotEvent) -> None:
    if event.type == "download-failed":
        logging.warning("Download failed: %s - %s", event.url, event.error)
    elif event.type == "copy-failed":
        logging.warning("Bundled copy failed: %s - %s", event.source_path, event.error)
    elif event.type == "skip-existing":
        logging.info("Using existing snapshot (%d bytes)", event.byte_size or 0)
    elif event.type == "download-success":
        logging.info("Downloaded %d bytes from %s", event.byte_size or 0, event.url)
    elif event.type == "copy-success":
        logging.info("Copied %d bytes from %s", event.byte_size or 0, event.source_path)
    else:
        logging.debug("Snapshot event: %s", event.type)


async def _run_refresh_async(args: argparse.Namespace) -> int:
    settings = ingest_settings_from_env()
    manager = SnapshotManager(snapshot_config_from_env())
    db_path = Path(args.db) if args.db else settings.db_path

    result = await manager.ensure_snapshot(
        db_path,
        force=args.force,
        source_urls=args.source_url,
        bundled_directory=args.bundled_dir,
        on_event=_log_snapshot_event,
    )

    if args.json_output:
        _write_text(to_json(result.to_dict()), args.output)
    else:
        _write_text(format_snapshot_summary(result), args.output)
    return 0


def refresh_main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the docs-refresh command."""
    args = _parse_refresh_args(argv)
    _setup_logging(args.verbose)
    load_env_files()

    try:
        return asyncio.run(_run_refresh_async(args))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except DocsError as exc:
        logging.error("%s", exc)
        return 1
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 1


# =============================================================================
# RESCRAPE COMMAND (live ingestion)
# =============================================================================


def _parse_rescrape_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="docs-rescrape",
        description="Rebuild the documentation snapshot from the live Pagefind index.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # Full rescrape with defaults
  docs-rescrape

  # Gentler on the origin server, list failures at the end
  docs-rescrape --concurrency 5 --show-failed

  # Give up if the whole run takes longer than 30 minutes
  docs-rescrape --timeout 1800
""",
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="Snapshot file path (default: $PAGEFIND_DOCS_DB_PATH or data/docs.parquet)",
    )
    parser.add_argument(
        "--base-url",
        type=str,
        default=None,
        help="Pagefind base URL (default: $PAGEFIND_DOCS_BASE_URL)",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Concurrent fragment fetches (default: 15)",
    )
    parser.add_argument(
        "--progress-every",
        type=int,
        default=None,
        help="Log progress every N pages (default: 100)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Overall deadline for the run in seconds (default: none)",
    )
    parser.add_argument(
        "--show-failed",
        action="store_true",
        help="List every failed page URL in the summary",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Write the summary to a file instead of stdout",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output the result as JSON",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def _log_ingest_event(event: IngestEvent) -> None:
    if isinstance(event, Discovered):
        logging.info("Discovered %d pages", event.total_pages)
    elif isinstance(event, Progress):
        logging.info("Progress: %d/%d", event.processed_pages, event.total_pages)
    elif isinstance(event, PageFailed):
        logging.debug("Page failed: %s - %s", event.url, event.error)
    elif isinstance(event, Completed):
        logging.info(
            "Rescrape complete: %d pages (%d fetched, %d failed)",
            event.total_pages,
            event.fetched_pages,
            event.failed_pages,
        )


async def _run_rescrape_async(args: argparse.Namespace) -> int:
    settings = ingest_settings_from_env()
    db_path = Path(args.db) if args.db else settings.db_path

    result = await ingest_all(
        db_path,
        concurrency=args.concurrency or settings.concurrency,
        progress_every=args.progress_every or settings.progress_every,
        on_progress=_log_ingest_event,
        timeout=args.timeout,
        base_url=args.base_url or settings.base_url,
    )

    if args.json_output:
        _write_text(to_json(result.to_dict()), args.output)
    else:
        _write_text(format_ingestion_summary(result, show_failed=args.show_failed), args.output)

    if result.total_pages and not result.fetched_pages:
        logging.error("All page fetches failed")
        return 1
    return 0


def rescrape_main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the docs-rescrape command."""
    args = _parse_rescrape_args(argv)
    _setup_logging(args.verbose)
    load_env_files()

    try:
        return asyncio.run(_run_rescrape_async(args))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except DocsError as exc:
        logging.error("%s", exc)
        return 1
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 1


main = refresh_main


if __name__ == "__main__":
    sys.exit(refresh_main())
