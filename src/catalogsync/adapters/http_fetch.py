"""Fetch catalog documents over HTTP with retries."""

from __future__ import annotations

import asyncio
from logging import getLogger

import httpx
from httpx_retries import RetryTransport

from catalogsync.config.http import FetchConfig, get_fetch_config
from catalogsync.domain.ports.fetching import DocumentFetchError

log = getLogger(__name__)


class HttpDocumentFetcher:
    """Callable fetcher returning the raw bytes behind a feed URL.

    ``transport`` replaces the network transport underneath the retry layer, which
    is how tests inject ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: FetchConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or get_fetch_config()
        self._transport = transport

    def _build_client(self) -> httpx.AsyncClient:
        retry_transport = RetryTransport(
            transport=self._transport or httpx.AsyncHTTPTransport(),
            retry=self.config.retry.build(),
        )
        headers = dict(self.config.default_headers) if self.config.default_headers else None
        return httpx.AsyncClient(
            transport=retry_transport,
            timeout=self.config.timeout_seconds,
            headers=headers,
            follow_redirects=self.config.follow_redirects,
        )

    async def fetch(self, url: str) -> bytes:
        async with self._build_client() as client:
            try:
                response = await client.get(url)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise DocumentFetchError(f"Failed to fetch {url}: {exc}") from exc
        log.info("Fetched %s (%d bytes)", url, len(response.content))
        return response.content

    def __call__(self, url: str) -> bytes:
        return asyncio.run(self.fetch(url))
