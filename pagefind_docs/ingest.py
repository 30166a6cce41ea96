"""Full rescrape of the Pagefind index into a Parquet snapshot.

Phases: discover (entry point) → enumerate (page index) → fetch every
fragment through the bounded scheduler → aggregate → write the snapshot
once → report.

Per-page failures are collected into ``IngestionResult.failed_urls`` and
reported through ``on_progress``; they never abort the run. Only a missing
language or an unreachable entry point / page index is fatal.

Example usage:

    from pagefind_docs.ingest import ingest_all

    result = await ingest_all("data/docs.parquet", concurrency=15)
    print(result.fetched_pages, "/", result.total_pages)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from .client import DEFAULT_BASE_URL, PagefindClient
from .document import IngestionResult, PageRecord
from .errors import DeadlineExceededError, NoLanguageError
from .scheduler import Outcome, run_bounded
from .store import PageWriter, ParquetPageWriter

LOGGER = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 15
DEFAULT_PROGRESS_EVERY = 100


# ---------------------------------------------------------------------------
# Progress events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Discovered:
    total_pages: int
    type: str = "discovered"


@dataclass(frozen=True, slots=True)
class Progress:
    processed_pages: int
    total_pages: int
    type: str = "progress"


@dataclass(frozen=True, slots=True)
class PageFailed:
    url: str
    error: str
    type: str = "page-failed"


@dataclass(frozen=True, slots=True)
class Completed:
    total_pages: int
    fetched_pages: int
    failed_pages: int
    type: str = "completed"


IngestEvent = Union[Discovered, Progress, PageFailed, Completed]
ProgressSink = Callable[[IngestEvent], None]


def _format_error(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


def _positive_or(value: Optional[int], default: int) -> int:
    if isinstance(value, int) and value > 0:
        return value
    return default


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


async def _collect(
    client: PagefindClient,
    concurrency: int,
    progress_every: int,
    emit: ProgressSink,
) -> Tuple[List[str], List[Outcome[PageRecord]]]:
    """Discover, enumerate and fetch every page. Nothing is written here."""
    entry = await client.fetch_entry_point()
    first = entry.first_language()
    if first is None:
        raise NoLanguageError("No languages found in Pagefind entry point")
    lang_key, language = first
    LOGGER.info("Using language %r (hash %s)", lang_key, language.hash)

    page_hashes = await client.fetch_page_index(language.hash)
    total_pages = len(page_hashes)
    LOGGER.info("Discovered %d pages", total_pages)
    emit(Discovered(total_pages=total_pages))

    processed = 0

    def on_settled(index: int, outcome: Outcome[PageRecord]) -> None:
        nonlocal processed
        processed += 1
        if outcome.ok:
            LOGGER.debug("Fetched %s", outcome.value.url)
        else:
            url = client.fragment_url(page_hashes[index])
            LOGGER.warning("Failed to fetch %s: %s", url, outcome.error)
            emit(PageFailed(url=url, error=_format_error(outcome.error)))
        if processed % progress_every == 0 or processed == total_pages:
            LOGGER.info("Processed %d/%d pages", processed, total_pages)
            emit(Progress(processed_pages=processed, total_pages=total_pages))

    tasks = [
        (lambda page_hash=page_hash: client.fetch_fragment(page_hash))
        for page_hash in page_hashes
    ]
    outcomes = await run_bounded(tasks, concurrency, on_settled=on_settled)
    return page_hashes, outcomes


async def _persist(
    destination: Path,
    client: PagefindClient,
    writer: PageWriter,
    page_hashes: List[str],
    outcomes: List[Outcome[PageRecord]],
    emit: ProgressSink,
) -> IngestionResult:
    records: List[PageRecord] = []
    failed_urls: List[str] = []
    for page_hash, outcome in zip(page_hashes, outcomes):
        if outcome.ok and outcome.value is not None:
            records.append(outcome.value)
        else:
            failed_urls.append(client.fragment_url(page_hash))

    await asyncio.to_thread(writer.write, records, destination)

    emit(
        Completed(
            total_pages=len(page_hashes),
            fetched_pages=len(records),
            failed_pages=len(failed_urls),
        )
    )
    return IngestionResult(
        total_pages=len(page_hashes),
        fetched_pages=len(records),
        failed_urls=failed_urls,
        destination_path=str(destination),
    )


async def ingest_all(
    destination: Union[str, Path],
    *,
    concurrency: Optional[int] = DEFAULT_CONCURRENCY,
    progress_every: Optional[int] = DEFAULT_PROGRESS_EVERY,
    on_progress: Optional[ProgressSink] = None,
    client: Optional[PagefindClient] = None,
    writer: Optional[PageWriter] = None,
    timeout: Optional[float] = None,
    base_url: str = DEFAULT_BASE_URL,
) -> IngestionResult:
    """Rescrape every page and replace the snapshot at *destination*.

    Args:
        destination: Snapshot file to write.
        concurrency: Maximum fragment fetches in flight (default: 15).
        progress_every: Emit a ``Progress`` event every N settled pages
            (default: 100). The final page always emits one.
        on_progress: Sink receiving ``Discovered``, ``Progress``,
            ``PageFailed`` and ``Completed`` events, all before return.
        client: Optional pre-built :class:`PagefindClient`. When omitted a
            client for *base_url* is created and closed by this call.
        writer: Column store writer (default: :class:`ParquetPageWriter`).
        timeout: Optional deadline in seconds for discovery and page
            fetching. The snapshot write is not subject to it.
        base_url: Pagefind base URL used when *client* is omitted.

    Returns:
        :class:`IngestionResult` with counts and failed fragment URLs.

    Raises:
        NoLanguageError: The entry point lists no languages.
        ProtocolError, TransportError, FormatError: Entry point or page index
            could not be fetched or decoded.
        DeadlineExceededError: *timeout* elapsed before every page was
            fetched. The snapshot is left untouched.
    """
    dest = Path(destination)
    sink: ProgressSink = on_progress or (lambda event: None)
    owns_client = client is None
    active_client = client or PagefindClient(base_url)

    collect = _collect(
        active_client,
        _positive_or(concurrency, DEFAULT_CONCURRENCY),
        _positive_or(progress_every, DEFAULT_PROGRESS_EVERY),
        sink,
    )
    try:
        if timeout is not None and timeout > 0:
            try:
                page_hashes, outcomes = await asyncio.wait_for(collect, timeout)
            except asyncio.TimeoutError as exc:
                raise DeadlineExceededError(timeout) from exc
        else:
            page_hashes, outcomes = await collect
    finally:
        if owns_client:
            await active_client.aclose()

    # The deadline covers fetching only; a started write always completes.
    return await _persist(
        dest, active_client, writer or ParquetPageWriter(), page_hashes, outcomes, sink
    )
