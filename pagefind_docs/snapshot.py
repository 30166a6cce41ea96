"""Snapshot acquisition: make sure a usable docs snapshot file exists.

Priority order for one call:

1. ``existing``: the destination is already a file of at least
   ``min_bytes`` (skipped when ``force=True``).
2. ``download``: each candidate source URL in order; the first 2xx response
   with a large enough payload wins.
3. ``bundled-copy``: each bundled candidate file in order.

Every write goes through a temp file in the destination directory followed
by an atomic rename. Concurrent calls for the same destination share one
in-flight attempt.

Example usage:

    from pagefind_docs.snapshot import SnapshotConfig, SnapshotManager

    manager = SnapshotManager(SnapshotConfig(source_urls=["https://example.com/docs.parquet"]))
    result = await manager.ensure_snapshot("data/docs.parquet")
    print(result.source, result.byte_size)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union

import httpx

from .atomic import atomic_copy, atomic_write_bytes
from .document import SnapshotResult
from .errors import SnapshotUnavailableError

LOGGER = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_URLS: List[str] = [
    "https://raw.githubusercontent.com/anand-testcompare/opencode-palantir/main/data/docs.parquet",
]
SNAPSHOT_FILENAME = "docs.parquet"
MIN_SNAPSHOT_BYTES = 64
PACKAGE_DATA_DIR = Path(__file__).resolve().parent / "data"


@dataclass
class SnapshotConfig:
    """Where snapshots may come from and how they are validated."""

    source_urls: List[str] = field(default_factory=lambda: list(DEFAULT_SNAPSHOT_URLS))
    bundled_directory: Optional[Path] = None
    min_bytes: int = MIN_SNAPSHOT_BYTES
    download_timeout: float = 120.0


@dataclass(frozen=True, slots=True)
class SnapshotEvent:
    """Acquisition progress event.

    ``type`` is one of ``start``, ``skip-existing``, ``download-start``,
    ``download-failed``, ``download-success``, ``copy-start``,
    ``copy-failed``, ``copy-success``, ``done``.
    """

    type: str
    url: Optional[str] = None
    source_path: Optional[str] = None
    byte_size: Optional[int] = None
    error: Optional[str] = None
    force: Optional[bool] = None
    result: Optional[SnapshotResult] = None


EventSink = Callable[[SnapshotEvent], None]


class SnapshotTooSmallError(ValueError):
    """A candidate snapshot is below the minimum sane size."""


def _dedupe(values: Sequence[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for value in values:
        value = value.strip()
        if value:
            seen.setdefault(value, None)
    return list(seen)


def _format_error(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


class SnapshotManager:
    """Acquires snapshot files and coalesces concurrent requests per path."""

    def __init__(
        self,
        config: Optional[SnapshotConfig] = None,
        *,
        http_client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
    ):
        self.config = config or SnapshotConfig()
        self._http_client_factory = http_client_factory or self._default_http_client
        self._in_flight: Dict[str, "asyncio.Task[SnapshotResult]"] = {}

    def _default_http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.config.download_timeout, follow_redirects=True
        )

    @property
    def in_flight(self) -> int:
        """Number of acquisitions currently running."""
        return len(self._in_flight)

    async def ensure_snapshot(
        self,
        destination: Union[str, Path],
        *,
        force: bool = False,
        source_urls: Optional[Sequence[str]] = None,
        bundled_directory: Optional[Union[str, Path]] = None,
        on_event: Optional[EventSink] = None,
    ) -> SnapshotResult:
        """Ensure a valid snapshot exists at *destination*.

        Callers that arrive while an acquisition for the same resolved path
        is running receive that attempt's result (or error); their own
        options are not applied.

        Raises:
            SnapshotUnavailableError: Every download and bundled candidate
                failed.
        """
        dest = Path(destination).resolve()
        key = str(dest)

        existing = self._in_flight.get(key)
        if existing is not None:
            LOGGER.debug("Joining in-flight snapshot acquisition for %s", key)
            return await asyncio.shield(existing)

        task = asyncio.ensure_future(
            self._acquire(
                dest,
                force=force,
                source_urls=source_urls,
                bundled_directory=bundled_directory,
                emit=on_event or (lambda event: None),
            )
        )
        self._in_flight[key] = task

        def _clear(done: "asyncio.Task[SnapshotResult]") -> None:
            if self._in_flight.get(key) is done:
                del self._in_flight[key]

        task.add_done_callback(_clear)
        return await asyncio.shield(task)

    # -- Internal -----------------------------------------------------------

    def resolve_source_urls(self, source_urls: Optional[Sequence[str]] = None) -> List[str]:
        if source_urls is not None:
            return _dedupe(source_urls)
        return _dedupe(self.config.source_urls or DEFAULT_SNAPSHOT_URLS)

    def bundled_candidates(
        self, destination: Path, bundled_directory: Optional[Union[str, Path]] = None
    ) -> List[Path]:
        directory = bundled_directory or self.config.bundled_directory
        if directory:
            base = Path(directory).expanduser()
            candidates = [base / SNAPSHOT_FILENAME, base / "data" / SNAPSHOT_FILENAME]
        else:
            candidates = [PACKAGE_DATA_DIR / SNAPSHOT_FILENAME]

        target = destination.resolve()
        resolved: List[Path] = []
        for candidate in candidates:
            candidate = candidate.resolve()
            if candidate != target and candidate not in resolved:
                resolved.append(candidate)
        return resolved

    def _check_size(self, byte_size: int, source: str) -> None:
        if byte_size < self.config.min_bytes:
            raise SnapshotTooSmallError(
                f"Snapshot from {source} is unexpectedly small ({byte_size} bytes). "
                f"Expected at least {self.config.min_bytes} bytes."
            )

    async def _acquire(
        self,
        dest: Path,
        *,
        force: bool,
        source_urls: Optional[Sequence[str]],
        bundled_directory: Optional[Union[str, Path]],
        emit: EventSink,
    ) -> SnapshotResult:
        emit(SnapshotEvent(type="start", force=force))
        dest.parent.mkdir(parents=True, exist_ok=True)

        if not force and dest.is_file():
            size = dest.stat().st_size
            if size >= self.config.min_bytes:
                result = SnapshotResult(
                    path=str(dest), changed=False, source="existing", byte_size=size
                )
                emit(SnapshotEvent(type="skip-existing", byte_size=size))
                emit(SnapshotEvent(type="done", result=result))
                return result
            LOGGER.warning(
                "Existing snapshot %s is only %d bytes; replacing it", dest, size
            )

        reasons: List[str] = []
        urls = self.resolve_source_urls(source_urls)

        result = await self._try_download(dest, urls, emit, reasons)
        if result is None:
            result = await self._try_bundled(dest, bundled_directory, emit, reasons)

        if result is None:
            candidates = self.bundled_candidates(dest, bundled_directory)
            if not any(path.is_file() for path in candidates):
                reasons.append("No bundled snapshot was found.")
            raise SnapshotUnavailableError(
                reasons, checked_urls=len(urls), checked_files=len(candidates)
            )

        emit(SnapshotEvent(type="done", result=result))
        return result

    async def _try_download(
        self, dest: Path, urls: List[str], emit: EventSink, reasons: List[str]
    ) -> Optional[SnapshotResult]:
        if not urls:
            return None

        def failed(url: str, reason: str) -> None:
            LOGGER.warning("Snapshot download from %s failed: %s", url, reason)
            emit(SnapshotEvent(type="download-failed", url=url, error=reason))
            reasons.append(f"{url}: {reason}")

        async with self._http_client_factory() as client:
            for url in urls:
                emit(SnapshotEvent(type="download-start", url=url))
                LOGGER.info("Downloading docs snapshot from %s", url)
                try:
                    response = await client.get(url)
                except httpx.HTTPError as exc:
                    failed(url, _format_error(exc))
                    continue

                if not response.is_success:
                    failed(url, f"HTTP {response.status_code} {response.reason_phrase}".strip())
                    continue

                payload = response.content
                try:
                    self._check_size(len(payload), url)
                    size = await asyncio.to_thread(atomic_write_bytes, dest, payload)
                except (SnapshotTooSmallError, OSError) as exc:
                    failed(url, _format_error(exc))
                    continue

                emit(SnapshotEvent(type="download-success", url=url, byte_size=size))
                return SnapshotResult(
                    path=str(dest),
                    changed=True,
                    source="download",
                    byte_size=size,
                    source_url=url,
                )
        return None

    async def _try_bundled(
        self,
        dest: Path,
        bundled_directory: Optional[Union[str, Path]],
        emit: EventSink,
        reasons: List[str],
    ) -> Optional[SnapshotResult]:
        for candidate in self.bundled_candidates(dest, bundled_directory):
            if not candidate.is_file():
                continue
            emit(SnapshotEvent(type="copy-start", source_path=str(candidate)))
            try:
                self._check_size(candidate.stat().st_size, str(candidate))
                size = await asyncio.to_thread(atomic_copy, candidate, dest)
            except (SnapshotTooSmallError, OSError) as exc:
                reason = _format_error(exc)
                LOGGER.warning("Bundled snapshot %s unusable: %s", candidate, reason)
                emit(SnapshotEvent(type="copy-failed", source_path=str(candidate), error=reason))
                reasons.append(f"{candidate}: {reason}")
                continue

            LOGGER.info("Copied bundled snapshot %s to %s", candidate, dest)
            emit(SnapshotEvent(type="copy-success", source_path=str(candidate), byte_size=size))
            return SnapshotResult(
                path=str(dest), changed=True, source="bundled-copy", byte_size=size
            )
        return None
