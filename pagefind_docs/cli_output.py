"""Output and formatting helpers shared by the CLI and the MCP server."""

from __future__ import annotations

import json
from typing import Any, Dict, Sequence, Tuple

from .document import IngestionResult, SnapshotResult

NO_SNAPSHOT_MESSAGE = (
    "Documentation snapshot not found. Run `docs-refresh` (or the refresh_docs "
    "tool) to download the documentation snapshot."
)

_SOURCE_LABELS = {
    "existing": "existing snapshot",
    "download": "downloaded snapshot",
    "bundled-copy": "bundled snapshot copy",
}


def format_ingestion_summary(result: IngestionResult, show_failed: bool = False) -> str:
    """Render a rescrape summary: total / fetched / failed, optional url list."""
    lines = [
        f"Refreshed documentation: {result.fetched_pages}/{result.total_pages} "
        f"pages fetched. {result.failed_pages} failures.",
        f"Snapshot: {result.destination_path}",
    ]
    if show_failed and result.failed_urls:
        lines.append("")
        lines.append("Failed URLs:")
        lines.extend(f"- {url}" for url in result.failed_urls)
    return "\n".join(lines)


def format_snapshot_summary(result: SnapshotResult) -> str:
    label = _SOURCE_LABELS.get(result.source, result.source)
    if not result.changed:
        return f"Docs snapshot already present ({label}, {result.byte_size} bytes): {result.path}"
    origin = f" from {result.source_url}" if result.source_url else ""
    return (
        f"Docs snapshot updated using {label}{origin} "
        f"({result.byte_size} bytes): {result.path}"
    )


def format_page_listing(pages: Sequence[Tuple[str, str]]) -> str:
    lines = [f"- {title} ({url})" for url, title in pages]
    return (
        f"Available documentation ({len(pages)} pages):\n\n" + "\n".join(lines)
    )


def to_json(data: Dict[str, Any]) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)

