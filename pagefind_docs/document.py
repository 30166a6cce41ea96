"""Data structures for ingested pages and pipeline results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(slots=True)
class PageRecord:
    """One documentation page, keyed by its index-format ``url``."""

    url: str
    title: str
    content: str
    word_count: int
    meta: Dict[str, Any] = field(default_factory=dict)
    fetched_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "url": self.url,
            "title": self.title,
            "content": self.content,
            "word_count": self.word_count,
            "meta": self.meta,
            "fetched_at": self.fetched_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PageRecord":
        return cls(
            url=data["url"],
            title=data.get("title") or "",
            content=data.get("content") or "",
            word_count=int(data.get("word_count") or 0),
            meta=dict(data.get("meta") or {}),
            fetched_at=data.get("fetched_at") or utc_now_iso(),
        )


@dataclass(slots=True)
class IngestionResult:
    """Summary of one full rescrape run."""

    total_pages: int
    fetched_pages: int
    failed_urls: List[str] = field(default_factory=list)
    destination_path: str = ""

    @property
    def failed_pages(self) -> int:
        return len(self.failed_urls)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_pages": self.total_pages,
            "fetched_pages": self.fetched_pages,
            "failed_pages": self.failed_pages,
            "failed_urls": list(self.failed_urls),
            "destination_path": self.destination_path,
        }


@dataclass(slots=True)
class SnapshotResult:
    """Outcome of one snapshot acquisition call."""

    path: str
    changed: bool
    source: str  # existing, download, bundled-copy
    byte_size: int
    source_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "path": self.path,
            "changed": self.changed,
            "source": self.source,
            "byte_size": self.byte_size,
        }
        if self.source_url:
            data["source_url"] = self.source_url
        return data
