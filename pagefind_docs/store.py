"""Parquet column store for documentation snapshots.

The snapshot is a single Parquet file with one row per page. ``meta`` is
stored as JSON text so that arbitrary per-page facets survive without a
fixed nested schema.

Key Classes:
- `ParquetPageWriter`: writes a full snapshot with an atomic replace.
- `ParquetPageReader`: selective column / row-range reads, url lookups.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple, Union

import pyarrow as pa
import pyarrow.parquet as pq

from .atomic import atomic_replace
from .document import PageRecord

LOGGER = logging.getLogger(__name__)

PAGE_SCHEMA = pa.schema(
    [
        pa.field("url", pa.string(), nullable=False),
        pa.field("title", pa.string()),
        pa.field("content", pa.string()),
        pa.field("word_count", pa.int64()),
        pa.field("meta", pa.string()),
        pa.field("fetched_at", pa.string()),
    ]
)
COLUMNS: Tuple[str, ...] = tuple(PAGE_SCHEMA.names)


class PageWriter(Protocol):
    """Anything that can persist a full set of pages to a destination."""

    def write(self, rows: Sequence[PageRecord], destination: Union[str, Path]) -> Any:
        ...


def _dedupe_last_wins(rows: Iterable[PageRecord]) -> List[PageRecord]:
    by_url: Dict[str, PageRecord] = {}
    for row in rows:
        by_url.pop(row.url, None)
        by_url[row.url] = row
    return list(by_url.values())


def _to_row(record: PageRecord) -> Dict[str, Any]:
    return {
        "url": record.url,
        "title": record.title,
        "content": record.content,
        "word_count": int(record.word_count),
        "meta": json.dumps(record.meta, ensure_ascii=False, default=str),
        "fetched_at": record.fetched_at,
    }


def _from_row(row: Dict[str, Any]) -> PageRecord:
    meta_text = row.get("meta")
    return PageRecord.from_dict(
        {**row, "meta": json.loads(meta_text) if meta_text else {}}
    )


class ParquetPageWriter:
    """Write page records to Parquet: temp file, fsync, rename."""

    def __init__(self, compression: str = "zstd", row_group_size: int = 512):
        self.compression = compression
        self.row_group_size = row_group_size

    def write(self, rows: Sequence[PageRecord], destination: Union[str, Path]) -> int:
        """Replace *destination* with a snapshot of *rows*.

        Later rows win over earlier rows with the same url.

        Returns:
            Size of the written file in bytes.
        """
        records = _dedupe_last_wins(rows)
        table = pa.Table.from_pylist([_to_row(r) for r in records], schema=PAGE_SCHEMA)

        def produce(tmp_path: Path) -> None:
            pq.write_table(
                table,
                str(tmp_path),
                compression=self.compression,
                row_group_size=max(1, self.row_group_size),
                write_statistics=True,
            )

        size = atomic_replace(destination, produce)
        LOGGER.info("Wrote %d pages (%d bytes) to %s", len(records), size, destination)
        return size


class ParquetPageReader:
    """Read access to a snapshot file.

    The url index is built lazily from the ``url`` column only. Call
    :meth:`reload` after the file has been replaced.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._index: Optional[Dict[str, int]] = None
        self._mtime_ns: Optional[int] = None

    def _check_fresh(self) -> None:
        mtime_ns = self.path.stat().st_mtime_ns
        if self._mtime_ns != mtime_ns:
            self._index = None
            self._mtime_ns = mtime_ns

    def reload(self) -> None:
        self._index = None
        self._mtime_ns = None

    @property
    def num_rows(self) -> int:
        return pq.ParquetFile(str(self.path)).metadata.num_rows

    def read(
        self,
        columns: Optional[Sequence[str]] = None,
        row_range: Optional[Tuple[int, int]] = None,
    ) -> List[Dict[str, Any]]:
        """Read selected *columns* for rows ``[start, stop)`` as dicts."""
        if columns is not None:
            unknown = [c for c in columns if c not in COLUMNS]
            if unknown:
                raise ValueError(f"Unknown column(s): {', '.join(unknown)}")
        table = pq.read_table(
            str(self.path), columns=list(columns) if columns is not None else None
        )
        if row_range is not None:
            start, stop = row_range
            start = max(0, start)
            table = table.slice(start, max(0, stop - start))
        return table.to_pylist()

    def url_index(self) -> Dict[str, int]:
        """Map each url to its row position."""
        self._check_fresh()
        if self._index is None:
            urls = pq.read_table(str(self.path), columns=["url"]).column("url").to_pylist()
            self._index = {url: position for position, url in enumerate(urls)}
        return self._index

    def get_page(self, url: str) -> Optional[PageRecord]:
        position = self.url_index().get(url)
        if position is None:
            return None
        rows = self.read(row_range=(position, position + 1))
        return _from_row(rows[0]) if rows else None

    def list_pages(self) -> List[Tuple[str, str]]:
        """Return ``(url, title)`` for every page in file order."""
        return [(row["url"], row["title"] or "") for row in self.read(["url", "title"])]

    def iter_pages(self) -> Iterable[PageRecord]:
        for row in self.read():
            yield _from_row(row)
