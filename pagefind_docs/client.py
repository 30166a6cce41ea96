"""Async client for the three Pagefind index endpoints.

Public API::

    from pagefind_docs.client import PagefindClient

    async with PagefindClient() as client:
        entry = await client.fetch_entry_point()
        _, language = entry.first_language()
        hashes = await client.fetch_page_index(language.hash)
        page = await client.fetch_fragment(hashes[0])
        print(page.title, page.url)
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import List, Optional

import cbor2
import httpx

from .document import PageRecord
from .errors import FormatError
from .frame import decode_frame
from .retry import MAX_RETRIES, SleepFn, fetch_with_retry
from .schemas import EntryPoint, PageIndex, parse_entry_point, parse_fragment, parse_page_index

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://www.palantir.com/docs/pagefind"
DEFAULT_TIMEOUT = 30.0


class PagefindClient:
    """Typed access to ``pagefind-entry.json``, ``pf_meta`` and ``pf_fragment``.

    The client owns an ``httpx.AsyncClient`` unless one is passed in, in which
    case closing is left to the caller.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self._sleep = sleep
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"Accept-Encoding": "identity"},
        )

    async def __aenter__(self) -> "PagefindClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    # -- URLs ---------------------------------------------------------------

    def entry_point_url(self) -> str:
        return f"{self.base_url}/pagefind-entry.json"

    def page_index_url(self, lang_hash: str) -> str:
        return f"{self.base_url}/pagefind.{lang_hash}.pf_meta"

    def fragment_url(self, page_hash: str) -> str:
        """Deterministic fragment URL, also used to name failed pages."""
        return f"{self.base_url}/fragment/{page_hash}.pf_fragment"

    # -- Endpoints ----------------------------------------------------------

    async def _get(self, url: str) -> httpx.Response:
        return await fetch_with_retry(
            self._http, url, max_retries=self.max_retries, sleep=self._sleep
        )

    async def fetch_entry_point(self) -> EntryPoint:
        """Fetch and validate the JSON entry point."""
        url = self.entry_point_url()
        response = await self._get(url)
        try:
            data = response.json()
        except ValueError as exc:
            raise FormatError(f"pagefind-entry.json is not valid JSON: {exc}", url=url) from exc
        entry = parse_entry_point(data, url=url)
        LOGGER.debug(
            "Entry point version %s lists %d language(s)", entry.version, len(entry.languages)
        )
        return entry

    async def fetch_page_index_full(self, lang_hash: str) -> PageIndex:
        url = self.page_index_url(lang_hash)
        response = await self._get(url)
        payload = decode_frame(response.content)
        try:
            decoded = cbor2.loads(payload)
        except (cbor2.CBORDecodeError, ValueError) as exc:
            raise FormatError(f"Failed to decode pf_meta: {exc}", url=url) from exc
        return parse_page_index(decoded, url=url)

    async def fetch_page_index(self, lang_hash: str) -> List[str]:
        """Return the ordered page hashes listed in a language's ``pf_meta``."""
        index = await self.fetch_page_index_full(lang_hash)
        return index.hashes

    async def fetch_fragment(self, page_hash: str) -> PageRecord:
        """Fetch one page fragment and map it to a :class:`PageRecord`."""
        url = self.fragment_url(page_hash)
        response = await self._get(url)
        payload = decode_frame(response.content)
        try:
            data = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise FormatError(f"Fragment is not valid UTF-8 JSON: {exc}", url=url) from exc
        return parse_fragment(data, url=url).to_page_record()
