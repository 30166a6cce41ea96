"""Exception types raised by the ingestion and snapshot paths."""

from __future__ import annotations

from typing import List, Optional

FORMAT_CHANGED_NOTE = "The Pagefind index format may have changed upstream."
RESCRAPE_HINT = (
    "Run `docs-rescrape` (or the rescrape_docs tool) to rebuild the "
    "snapshot from the live documentation site."
)


class DocsError(Exception):
    """Base class for all pagefind_docs errors."""


class FormatError(DocsError):
    """Raised when a remote payload violates the expected wire format."""

    def __init__(self, message: str, url: str = ""):
        self.url = url
        if FORMAT_CHANGED_NOTE not in message:
            message = f"{message}. {FORMAT_CHANGED_NOTE}"
        super().__init__(message)


class NoLanguageError(FormatError):
    """Raised when the entry point lists no languages."""


class ProtocolError(DocsError):
    """Raised for a non-2xx HTTP response."""

    def __init__(self, message: str, status_code: int, url: str = ""):
        self.status_code = status_code
        self.url = url
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        """5xx responses are transient server trouble, anything else is final."""
        return self.status_code >= 500


class TransportError(DocsError):
    """Raised when a request fails before any HTTP response arrives."""

    def __init__(self, message: str, url: str = ""):
        self.url = url
        super().__init__(message)


class DeadlineExceededError(DocsError):
    """Raised when a full ingestion run exceeds its overall deadline."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Ingestion did not finish within {timeout:g} seconds; "
            "no snapshot was written."
        )


class SnapshotUnavailableError(DocsError):
    """Raised when every snapshot source (download and bundled) is exhausted."""

    def __init__(self, reasons: Optional[List[str]] = None, *, checked_urls: int = 0,
                 checked_files: int = 0):
        self.reasons = list(reasons or [])
        self.checked_urls = checked_urls
        self.checked_files = checked_files

        lines = ["No docs snapshot could be acquired."]
        if self.reasons:
            lines.extend(f"- {reason}" for reason in self.reasons)
        else:
            lines.append(
                f"Checked URLs={checked_urls}, bundled candidates={checked_files}."
            )
        lines.append(RESCRAPE_HINT)
        super().__init__("\n".join(lines))


class SnapshotReadError(DocsError):
    """Raised when the snapshot file exists but is not readable Parquet."""

    def __init__(self, path: str, cause: BaseException):
        self.path = path
        super().__init__(
            f"Documentation snapshot at {path} could not be read ({cause}). "
            "Run `docs-refresh --force` (or refresh_docs with force=true) to "
            "replace it, or `docs-rescrape` (or the rescrape_docs tool) to "
            "rebuild it."
        )
