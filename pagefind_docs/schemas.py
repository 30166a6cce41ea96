"""Validated shapes of the three remote Pagefind documents.

Every externally sourced payload passes through one of the ``parse_*``
functions below. Shape problems surface as :class:`FormatError` so that a
change in the upstream format is reported as such, not as a ``KeyError``
deep inside the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .document import PageRecord, utc_now_iso
from .errors import FormatError


class LanguageEntry(BaseModel):
    """Per-language block of ``pagefind-entry.json``."""

    model_config = ConfigDict(populate_by_name=True)

    hash: str
    wasm_hash: Optional[str] = Field(default=None, alias="wasm")
    page_count: int = 0


class EntryPoint(BaseModel):
    """Top-level ``pagefind-entry.json`` document."""

    version: str
    languages: Dict[str, LanguageEntry] = Field(default_factory=dict)

    def first_language(self) -> Optional[Tuple[str, LanguageEntry]]:
        """Return the first listed language, or *None* when there are none."""
        for key, entry in self.languages.items():
            return key, entry
        return None


class FragmentMeta(BaseModel):
    """``meta`` block of a fragment. Unknown keys are preserved."""

    model_config = ConfigDict(extra="allow")

    title: str = ""


class Fragment(BaseModel):
    """One page's fragment payload."""

    url: str
    content: str
    meta: FragmentMeta = Field(default_factory=FragmentMeta)
    word_count: int = 0
    filters: Dict[str, Any] = Field(default_factory=dict)
    anchors: List[Any] = Field(default_factory=list)

    def to_page_record(self, fetched_at: Optional[str] = None) -> PageRecord:
        meta: Dict[str, Any] = {"filters": self.filters, "anchors": self.anchors}
        meta.update(self.meta.model_extra or {})
        return PageRecord(
            url=self.url,
            title=self.meta.title,
            content=self.content,
            word_count=self.word_count,
            meta=meta,
            fetched_at=fetched_at or utc_now_iso(),
        )


@dataclass(slots=True)
class PageIndex:
    """Decoded ``pf_meta`` manifest: the ordered page hashes of one language."""

    version: str
    pages: List[Tuple[str, int]]

    @property
    def hashes(self) -> List[str]:
        return [page_hash for page_hash, _ in self.pages]


_PAGE_ENTRIES = TypeAdapter(List[Tuple[str, int]])


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


def parse_entry_point(data: Any, url: str = "") -> EntryPoint:
    try:
        return EntryPoint.model_validate(data)
    except ValidationError as exc:
        raise FormatError(
            f"Unexpected pagefind-entry.json structure ({_first_error(exc)})", url=url
        ) from exc


def parse_page_index(decoded: Any, url: str = "") -> PageIndex:
    """Validate a CBOR-decoded ``[version, pages, ...]`` array."""
    if not isinstance(decoded, (list, tuple)) or len(decoded) < 2:
        raise FormatError(
            "Failed to decode pf_meta: expected a [version, pages, ...] array, "
            f"got {type(decoded).__name__}",
            url=url,
        )
    try:
        pages = _PAGE_ENTRIES.validate_python(decoded[1])
    except ValidationError as exc:
        raise FormatError(
            f"Failed to decode pf_meta: unexpected page entry structure "
            f"({_first_error(exc)})",
            url=url,
        ) from exc
    return PageIndex(version=str(decoded[0]), pages=pages)


def parse_fragment(data: Any, url: str = "") -> Fragment:
    try:
        return Fragment.model_validate(data)
    except ValidationError as exc:
        raise FormatError(
            f"Unexpected fragment structure ({_first_error(exc)})", url=url
        ) from exc
