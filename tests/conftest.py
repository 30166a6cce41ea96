"""Shared fixtures (a fake Pagefind site) and strict test-accounting hooks."""

from __future__ import annotations

import gzip
import json
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Union

import cbor2
import httpx
import pytest

from pagefind_docs.client import PagefindClient

BASE_URL = "https://docs.test/pagefind"

ResponseSpec = Union[httpx.Response, Exception]


def make_frame(payload: bytes, header: bytes = b"pagefind_dcd") -> bytes:
    """Wrap *payload* the way Pagefind serves its binaries."""
    return gzip.compress(header + payload)


def fragment_payload(url: str, title: str, content: str = "Body text", **meta) -> bytes:
    data = {
        "url": url,
        "content": content,
        "word_count": len(content.split()),
        "filters": {"section": ["docs"]},
        "anchors": [],
        "meta": {"title": title, **meta},
    }
    return make_frame(json.dumps(data).encode("utf-8"))


class FakePagefindSite:
    """Routes paths to canned responses for ``httpx.MockTransport``.

    Each route holds a queue; the last response repeats once the queue is
    down to one entry. An ``Exception`` in the queue is raised instead.
    """

    def __init__(self, base_url: str = BASE_URL):
        self.base_url = base_url
        self.routes: Dict[str, List[ResponseSpec]] = {}
        self.calls: List[str] = []

    def route(self, path: str, *responses: ResponseSpec) -> None:
        self.routes[f"{self.base_url}/{path}"] = list(responses)

    def entry(self, languages: Dict[str, dict], version: str = "1.1.0") -> None:
        body = json.dumps({"version": version, "languages": languages}).encode()
        self.route("pagefind-entry.json", httpx.Response(200, content=body))

    def index(self, lang_hash: str, page_hashes: List[str]) -> None:
        pages = [[page_hash, 10] for page_hash in page_hashes]
        payload = make_frame(cbor2.dumps(["1.1.0", pages, [], []]))
        self.route(f"pagefind.{lang_hash}.pf_meta", httpx.Response(200, content=payload))

    def fragment(self, page_hash: str, *responses: ResponseSpec) -> None:
        self.route(f"fragment/{page_hash}.pf_fragment", *responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls.append(url)
        queue = self.routes.get(url)
        if not queue:
            return httpx.Response(404)
        spec = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(spec, Exception):
            raise spec
        # Fresh copy per request; httpx binds a response to one request.
        return httpx.Response(spec.status_code, content=spec.content)

    def count(self, suffix: str) -> int:
        return sum(1 for url in self.calls if url.endswith(suffix))

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@dataclass
class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records delays and returns at once."""

    delays: List[float] = field(default_factory=list)

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def site() -> FakePagefindSite:
    return FakePagefindSite()


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def pagefind_client(site, sleep) -> Callable[[], PagefindClient]:
    def factory() -> PagefindClient:
        return PagefindClient(site.base_url, http_client=site.http_client(), sleep=sleep)

    return factory


# ---------------------------------------------------------------------------
# Strict accounting: a run with skipped/deselected/xfail tests fails
# ---------------------------------------------------------------------------


@dataclass
class _TestAccounting:
    deselected: int = 0
    skipped: int = 0
    xfailed: int = 0
    xpassed: int = 0


_ACCOUNTING = _TestAccounting()


def pytest_deselected(items):  # pragma: no cover - pytest hook
    _ACCOUNTING.deselected += len(items)


def pytest_runtest_logreport(report):  # pragma: no cover - pytest hook
    if report.when not in {"setup", "call"}:
        return
    if getattr(report, "wasxfail", False):
        if report.outcome == "skipped":
            _ACCOUNTING.xfailed += 1
        elif report.outcome == "passed":
            _ACCOUNTING.xpassed += 1
    elif report.outcome == "skipped":
        _ACCOUNTING.skipped += 1


def pytest_sessionfinish(session, exitstatus):  # pragma: no cover - pytest hook
    counts = {
        name: value
        for name, value in vars(_ACCOUNTING).items()
        if value
    }
    if not counts:
        return

    reporter = session.config.pluginmanager.get_plugin("terminalreporter")
    if reporter:
        summary = ", ".join(f"{name}={value}" for name, value in counts.items())
        reporter.write_sep("=", f"Test accounting violations detected ({summary})")
    session.exitstatus = 1
