"""Tests for pagefind_docs.document, schemas and errors modules."""

import pytest

from pagefind_docs.document import IngestionResult, PageRecord, SnapshotResult
from pagefind_docs.errors import (
    FORMAT_CHANGED_NOTE,
    DeadlineExceededError,
    FormatError,
    NoLanguageError,
    SnapshotUnavailableError,
)
from pagefind_docs.schemas import (
    Fragment,
    parse_entry_point,
    parse_fragment,
    parse_page_index,
)


class TestPageRecord:
    def test_defaults(self):
        page = PageRecord(url="/a/", title="A", content="c", word_count=1)
        assert page.meta == {}
        assert page.fetched_at

    def test_dict_round_trip(self):
        page = PageRecord(
            url="/a/",
            title="A",
            content="c",
            word_count=1,
            meta={"anchors": []},
            fetched_at="2026-01-01T00:00:00+00:00",
        )
        assert PageRecord.from_dict(page.to_dict()) == page

    def test_from_dict_fills_missing(self):
        page = PageRecord.from_dict({"url": "/a/", "title": None})
        assert page.title == ""
        assert page.word_count == 0


class TestResults:
    def test_ingestion_counts(self):
        result = IngestionResult(total_pages=3, fetched_pages=2, failed_urls=["u"])
        assert result.failed_pages == 1
        assert result.to_dict()["failed_pages"] == 1

    def test_snapshot_to_dict_omits_missing_source_url(self):
        result = SnapshotResult(path="/d", changed=False, source="existing", byte_size=70)
        assert "source_url" not in result.to_dict()


class TestErrors:
    def test_format_error_note_added_once(self):
        err = FormatError(f"bad. {FORMAT_CHANGED_NOTE}")
        assert str(err).count(FORMAT_CHANGED_NOTE) == 1

    def test_no_language_is_format_error(self):
        assert isinstance(NoLanguageError("none"), FormatError)

    def test_deadline_message(self):
        assert "30 seconds" in str(DeadlineExceededError(30.0))

    def test_unavailable_without_reasons(self):
        err = SnapshotUnavailableError(checked_urls=2, checked_files=1)
        assert "URLs=2" in str(err)
        assert "docs-rescrape" in str(err)


class TestSchemas:
    def test_entry_point_requires_version(self):
        with pytest.raises(FormatError):
            parse_entry_point({"languages": {}})

    def test_page_index_too_short(self):
        with pytest.raises(FormatError, match="array"):
            parse_page_index(["1.0"])

    def test_page_index_accepts_tuples(self):
        assert parse_page_index(("1.0", [("h", 3)])).hashes == ["h"]

    def test_fragment_meta_extras_are_merged(self):
        fragment = Fragment(
            url="/a/",
            content="c",
            meta={"title": "A", "image": "/i.png"},
            filters={"k": ["v"]},
        )
        record = fragment.to_page_record(fetched_at="2026-01-01T00:00:00+00:00")
        assert record.meta == {"filters": {"k": ["v"]}, "anchors": [], "image": "/i.png"}
        assert record.fetched_at == "2026-01-01T00:00:00+00:00"

    def test_fragment_content_required(self):
        with pytest.raises(FormatError):
            parse_fragment({"url": "/a/"})
