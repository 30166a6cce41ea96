"""Materialize a Pagefind-indexed documentation site into a Parquet snapshot.

This package provides two ways to obtain the snapshot:

- Full rescrape from the live Pagefind index (entry point → page index →
  every page fragment), with bounded concurrency and retry/backoff
- Snapshot acquisition: reuse an existing file, download a prebuilt one, or
  copy a bundled one, with atomic replacement and request coalescing

Example usage:

    from pagefind_docs import ingest_all, ensure_snapshot, ParquetPageReader

    # Rebuild from the live site
    result = await ingest_all("data/docs.parquet", concurrency=15)
    print(f"{result.fetched_pages}/{result.total_pages} pages")
    for url in result.failed_urls:
        print("failed:", url)

    # Or fetch a prebuilt snapshot
    snap = await ensure_snapshot("data/docs.parquet")
    print(snap.source, snap.byte_size)

    # Read it back
    reader = ParquetPageReader("data/docs.parquet")
    page = reader.get_page("/docs/foundry/ontology/overview/")
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional, Sequence, Union

from .client import PagefindClient
from .document import IngestionResult, PageRecord, SnapshotResult
from .errors import (
    DeadlineExceededError,
    DocsError,
    FormatError,
    NoLanguageError,
    ProtocolError,
    SnapshotReadError,
    SnapshotUnavailableError,
    TransportError,
)
from .frame import HEADER_SIZE, decode_frame
from .ingest import ingest_all
from .scheduler import Outcome, run_bounded
from .snapshot import EventSink, SnapshotConfig, SnapshotEvent, SnapshotManager
from .store import ParquetPageReader, ParquetPageWriter

__all__ = [
    # Data types
    "PageRecord",
    "IngestionResult",
    "SnapshotResult",
    "Outcome",
    # Errors
    "DocsError",
    "FormatError",
    "NoLanguageError",
    "ProtocolError",
    "TransportError",
    "DeadlineExceededError",
    "SnapshotUnavailableError",
    "SnapshotReadError",
    # Wire format
    "HEADER_SIZE",
    "decode_frame",
    "PagefindClient",
    # Pipeline
    "run_bounded",
    "ingest_all",
    "ingest_all_sync",
    # Snapshot
    "SnapshotConfig",
    "SnapshotEvent",
    "SnapshotManager",
    "ensure_snapshot",
    "ensure_snapshot_sync",
    # Storage
    "ParquetPageReader",
    "ParquetPageWriter",
    # MCP Server
    "mcp",
]

_default_manager: Optional[SnapshotManager] = None


def get_mcp_server():
    """Get the MCP server instance (lazy import to avoid dependency if not needed)."""
    from .mcp_server import mcp

    return mcp


# Lazy import for mcp to avoid requiring fastmcp if not used
def __getattr__(name):
    if name == "mcp":
        from .mcp_server import mcp

        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def _get_default_manager() -> SnapshotManager:
    global _default_manager
    if _default_manager is None:
        _default_manager = SnapshotManager()
    return _default_manager


async def ensure_snapshot(
    destination: Union[str, Path],
    *,
    force: bool = False,
    source_urls: Optional[Sequence[str]] = None,
    bundled_directory: Optional[Union[str, Path]] = None,
    on_event: Optional[EventSink] = None,
    manager: Optional[SnapshotManager] = None,
) -> SnapshotResult:
    """
    Ensure a valid snapshot exists at *destination*.

    Uses a process-wide :class:`SnapshotManager` with built-in defaults
    unless *manager* is given, so concurrent callers in one process share
    in-flight downloads.
    """
    active = manager or _get_default_manager()
    return await active.ensure_snapshot(
        destination,
        force=force,
        source_urls=source_urls,
        bundled_directory=bundled_directory,
        on_event=on_event,
    )


def ensure_snapshot_sync(destination: Union[str, Path], **kwargs) -> SnapshotResult:
    """Synchronous wrapper for ensure_snapshot."""
    return asyncio.run(ensure_snapshot(destination, **kwargs))


def ingest_all_sync(destination: Union[str, Path], **kwargs) -> IngestionResult:
    """Synchronous wrapper for ingest_all."""
    return asyncio.run(ingest_all(destination, **kwargs))
