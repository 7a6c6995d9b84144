"""Shared aiohttp helpers for feed and price adapters."""

from __future__ import annotations

from typing import Any, Optional

import aiohttp

FEED_ACCEPT = "application/rss+xml, application/atom+xml, application/xml;q=0.9, */*;q=0.8"


class HttpFetcher:
    """Thin wrapper that applies the per-call timeout and client header.

    One fetcher (and one ClientSession) is shared by all adapters of a run.
    """

    def __init__(self, session: aiohttp.ClientSession, user_agent: str) -> None:
        self._session = session
        self._user_agent = user_agent

    def _headers(self, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        headers = {"User-Agent": self._user_agent}
        if extra:
            headers.update(extra)
        return headers

    async def get_text(
        self,
        url: str,
        timeout: float,
        headers: Optional[dict[str, str]] = None,
        params: Optional[dict[str, str]] = None,
    ) -> str:
        async with self._session.get(
            url,
            headers=self._headers(headers),
            params=params,
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as response:
            response.raise_for_status()
            return await response.text()

    async def get_json(
        self,
        url: str,
        timeout: float,
        headers: Optional[dict[str, str]] = None,
        params: Optional[dict[str, str]] = None,
    ) -> Any:
        async with self._session.get(
            url,
            headers=self._headers(headers),
            params=params,
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as response:
            response.raise_for_status()
            return await response.json(content_type=None)
