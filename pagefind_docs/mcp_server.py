"""MCP Server exposing the documentation snapshot.

Provides tools for:
- Looking up a documentation page by its url path
- Listing every page in the snapshot
- Refreshing the snapshot (prebuilt download / bundled copy)
- Rebuilding the snapshot from the live Pagefind index

Supports both STDIO and HTTP transports.

Usage:
    # STDIO (for Claude Desktop, etc.)
    python -m pagefind_docs.mcp_server

    # HTTP (for remote access)
    python -m pagefind_docs.mcp_server --transport http --port 8000

Environment Variables:
    See :mod:`pagefind_docs.config`.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Callable, Dict, Optional, TypeVar

import pyarrow as pa
from fastmcp import FastMCP

from .cli_output import (
    NO_SNAPSHOT_MESSAGE,
    format_ingestion_summary,
    format_page_listing,
    format_snapshot_summary,
)
from .config import ingest_settings_from_env, load_env_files, snapshot_config_from_env
from .errors import DocsError, SnapshotReadError
from .ingest import ingest_all
from .snapshot import SnapshotManager
from .store import ParquetPageReader

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

# Load .env before reading environment variables
load_env_files()

mcp = FastMCP(
    name="Documentation Snapshot",
    instructions="""
    Offline access to a documentation corpus materialized from its
    Pagefind search index:

    - list_all_docs: List every page (title and url path)
    - get_doc_page: Full content of one page by url path
    - refresh_docs: Download (or copy) a prebuilt snapshot
    - rescrape_docs: Rebuild the snapshot from the live site
    """,
)

_snapshot_manager: Optional[SnapshotManager] = None
_readers: Dict[str, ParquetPageReader] = {}


def _db_path() -> Path:
    return ingest_settings_from_env().db_path


def _get_snapshot_manager() -> SnapshotManager:
    global _snapshot_manager
    if _snapshot_manager is None:
        _snapshot_manager = SnapshotManager(snapshot_config_from_env())
    return _snapshot_manager


def _get_reader(path: Path) -> ParquetPageReader:
    key = str(path.resolve())
    reader = _readers.get(key)
    if reader is None:
        reader = _readers[key] = ParquetPageReader(path)
    return reader


# =============================================================================
# READ TOOLS
# =============================================================================


async def _read_snapshot(path: Path, read: Callable[[ParquetPageReader], T]) -> T:
    """Run a blocking reader call off the event loop."""
    try:
        return await asyncio.to_thread(read, _get_reader(path))
    except (pa.ArrowException, OSError) as exc:
        LOGGER.error("Cannot read docs snapshot %s: %s", path, exc)
        raise SnapshotReadError(str(path), exc) from exc


@mcp.tool
async def get_doc_page(url: str) -> str:
    """
    Retrieve a documentation page by its url path.

    Args:
        url: The url path of the page, e.g. /docs/foundry/ontology/overview/

    Returns:
        The page content, or a not-found message.
    """
    path = _db_path()
    if not path.is_file():
        return NO_SNAPSHOT_MESSAGE

    try:
        page = await _read_snapshot(path, lambda reader: reader.get_page(url))
    except SnapshotReadError as exc:
        return str(exc)
    if page is None:
        return f"Page not found: {url}"
    return page.content


@mcp.tool
async def list_all_docs() -> str:
    """
    List every documentation page with its url path and title.

    Returns:
        A markdown bullet list of ``title (url)`` entries.
    """
    path = _db_path()
    if not path.is_file():
        return NO_SNAPSHOT_MESSAGE

    try:
        pages = await _read_snapshot(path, lambda reader: reader.list_pages())
    except SnapshotReadError as exc:
        return str(exc)
    return format_page_listing(pages)


# =============================================================================
# REFRESH TOOLS
# =============================================================================


@mcp.tool
async def refresh_docs(force: bool = False) -> str:
    """
    Make sure a documentation snapshot is available locally.

    Uses the existing snapshot when present, otherwise downloads a prebuilt
    snapshot and falls back to a bundled copy.

    Args:
        force: Download a fresh snapshot even if one exists (default: false)

    Returns:
        A one-line summary of where the snapshot came from.
    """
    path = _db_path()
    try:
        result = await _get_snapshot_manager().ensure_snapshot(path, force=force)
    except DocsError as exc:
        LOGGER.error("Snapshot refresh failed: %s", exc)
        return str(exc)

    _get_reader(path).reload()
    return format_snapshot_summary(result)


@mcp.tool
async def rescrape_docs(concurrency: int = 15, show_failed: bool = False) -> str:
    """
    Rebuild the snapshot by fetching every page from the live Pagefind index.

    This takes several minutes for a few thousand pages. Prefer refresh_docs
    unless the prebuilt snapshot is stale or unavailable.

    Args:
        concurrency: Maximum concurrent page fetches (default: 15)
        show_failed: Include the list of failed page URLs (default: false)

    Returns:
        Summary with total / fetched / failed page counts.
    """
    settings = ingest_settings_from_env()
    LOGGER.info("Starting rescrape into %s", settings.db_path)
    try:
        result = await ingest_all(
            settings.db_path,
            concurrency=concurrency,
            progress_every=settings.progress_every,
            base_url=settings.base_url,
        )
    except DocsError as exc:
        LOGGER.error("Rescrape failed: %s", exc)
        return f"Rescrape failed: {exc}"

    _get_reader(settings.db_path).reload()
    return format_ingestion_summary(result, show_failed=show_failed)


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


def main():
    """CLI entry point for running the MCP server."""
    parser = argparse.ArgumentParser(
        description="Run the documentation snapshot MCP server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # STDIO transport (default, for Claude Desktop)
    python -m pagefind_docs.mcp_server

    # HTTP transport (for remote access)
    python -m pagefind_docs.mcp_server --transport http --port 8000

    # Custom snapshot location
    PAGEFIND_DOCS_DB_PATH=/srv/docs.parquet python -m pagefind_docs.mcp_server
""",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to for HTTP transport (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to for HTTP transport (default: 8000)",
    )

    args = parser.parse_args()

    LOGGER.info("Docs snapshot: %s", _db_path())

    if args.transport == "http":
        LOGGER.info("Starting MCP server on http://%s:%d/mcp", args.host, args.port)
        mcp.run(transport="http", host=args.host, port=args.port)
    else:
        LOGGER.info("Starting MCP server with STDIO transport")
        mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
