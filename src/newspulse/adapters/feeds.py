"""Feed adapters: syndication feeds and JSON news APIs.

Each adapter fetches one external source and validates its payload into
CandidateItem at this boundary. Parsing lives in plain functions so it can be
exercised without the network.
"""

from __future__ import annotations

import calendar
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

import feedparser

from newspulse.adapters.http import FEED_ACCEPT, HttpFetcher
from newspulse.core.config import RetryPolicy
from newspulse.core.fanout import with_retry
from newspulse.core.models import CandidateItem
from newspulse.core.text import sanitize_summary, split_aggregator_title

LOGGER = logging.getLogger(__name__)

GOOGLE_NEWS_SEARCH_URL = "https://news.google.com/rss/search"
CRYPTOCOMPARE_NEWS_URL = "https://min-api.cryptocompare.com/data/v2/news/"


def _struct_to_datetime(value: Any) -> Optional[datetime]:
    # feedparser normalizes every date flavour to a UTC struct_time.
    if not value:
        return None
    try:
        return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def parse_iso_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    text = str(value).strip().replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _summary_or_none(raw: Any) -> Optional[str]:
    return sanitize_summary(raw) or None


def parse_feed_entries(
    text: str,
    category: str,
    source: str,
    limit: int,
    split_outlet: bool = False,
) -> list[CandidateItem]:
    """Normalize an RSS/Atom document into at most limit candidate items.

    A feed with a single item and a feed with many both yield a list; missing
    fields become empty or None. With split_outlet, the outlet is taken from
    a trailing " - Outlet" in the title instead of the fixed source.
    """

    parsed = feedparser.parse(text)
    entries = list(getattr(parsed, "entries", None) or [])
    items: list[CandidateItem] = []
    for entry in entries[: max(0, limit)]:
        title = str(entry.get("title") or "").strip()
        if not title:
            continue
        item_source = source
        if split_outlet:
            title, item_source = split_aggregator_title(title)
        items.append(
            CandidateItem(
                title=title,
                url=str(entry.get("link") or "").strip(),
                source=item_source,
                category=category,
                published_at=_struct_to_datetime(
                    entry.get("published_parsed") or entry.get("updated_parsed")
                ),
                summary=_summary_or_none(entry.get("summary") or entry.get("description")),
            )
        )
    return items


def _records(payload: Any, key: str) -> Iterable[dict]:
    if not isinstance(payload, dict):
        return []
    records = payload.get(key) or []
    if not isinstance(records, list):
        return []
    return [record for record in records if isinstance(record, dict)]


def parse_cryptocompare(payload: Any, limit: int = 10) -> list[CandidateItem]:
    """Normalize a CryptoCompare v2 news response."""

    items: list[CandidateItem] = []
    for article in list(_records(payload, "Data"))[:limit]:
        title = str(article.get("title") or "").strip()
        if not title:
            continue
        source_info = article.get("source_info")
        source_name = source_info.get("name") if isinstance(source_info, dict) else None
        published_on = article.get("published_on")
        published_at = None
        if isinstance(published_on, (int, float)) and published_on > 0:
            published_at = datetime.fromtimestamp(published_on, tz=timezone.utc)
        items.append(
            CandidateItem(
                title=title,
                url=str(article.get("url") or "").strip(),
                source=str(source_name or article.get("source") or "CryptoCompare"),
                category="crypto",
                published_at=published_at,
                summary=_summary_or_none(article.get("body")),
            )
        )
    return items


def parse_newsapi(payload: Any, category: str, limit: int = 10) -> list[CandidateItem]:
    """Normalize a NewsAPI articles response."""

    items: list[CandidateItem] = []
    for article in list(_records(payload, "articles"))[:limit]:
        title = str(article.get("title") or "").strip()
        if not title:
            continue
        source = article.get("source")
        source_name = source.get("name") if isinstance(source, dict) else None
        items.append(
            CandidateItem(
                title=title,
                url=str(article.get("url") or "").strip(),
                source=str(source_name or "NewsAPI"),
                category=category,
                published_at=parse_iso_datetime(article.get("publishedAt")),
                summary=_summary_or_none(article.get("description")),
            )
        )
    return items


class _RetryingAdapter(ABC):
    """Base for adapters: one fetch-and-parse attempt wrapped in the retry policy."""

    label = "feed"

    def __init__(self, fetcher: HttpFetcher, category: str, limit: int, timeout: float, retry: RetryPolicy) -> None:
        self._fetcher = fetcher
        self._category = category
        self._limit = limit
        self._timeout = timeout
        self._retry = retry

    @abstractmethod
    async def _fetch_once(self) -> list[CandidateItem]:
        """Fetch and parse the source once."""

    async def fetch(self) -> list[CandidateItem]:
        return await with_retry(self._fetch_once, self._retry, self.label)


class RssFeedAdapter(_RetryingAdapter):
    """A publisher's own RSS feed; every item is attributed to the publisher."""

    def __init__(
        self,
        fetcher: HttpFetcher,
        url: str,
        source: str,
        category: str,
        limit: int,
        timeout: float,
        retry: RetryPolicy,
    ) -> None:
        super().__init__(fetcher, category, limit, timeout, retry)
        self._url = url
        self._source = source
        self.label = f"RSS {source}"

    async def _fetch_once(self) -> list[CandidateItem]:
        text = await self._fetcher.get_text(self._url, self._timeout, headers={"Accept": FEED_ACCEPT})
        return parse_feed_entries(text, self._category, self._source, self._limit)


class AggregatorSearchAdapter(_RetryingAdapter):
    """Google News search feed; the outlet is parsed out of each headline."""

    def __init__(
        self,
        fetcher: HttpFetcher,
        query: str,
        category: str,
        limit: int,
        timeout: float,
        retry: RetryPolicy,
        region: str = "US",
        language: str = "en",
    ) -> None:
        super().__init__(fetcher, category, limit, timeout, retry)
        self._query = query
        self._params = {
            "q": query,
            "hl": language if region == "US" else f"{language}-{region}",
            "gl": region,
            "ceid": f"{region}:{language}",
        }
        self.label = f"Google News: {query}"

    async def _fetch_once(self) -> list[CandidateItem]:
        text = await self._fetcher.get_text(
            GOOGLE_NEWS_SEARCH_URL,
            self._timeout,
            headers={"Accept": FEED_ACCEPT},
            params=self._params,
        )
        return parse_feed_entries(text, self._category, "Google News", self._limit, split_outlet=True)


class CryptoCompareNewsAdapter(_RetryingAdapter):
    label = "CryptoCompare news"

    async def _fetch_once(self) -> list[CandidateItem]:
        payload = await self._fetcher.get_json(
            CRYPTOCOMPARE_NEWS_URL,
            self._timeout,
            params={"lang": "EN", "sortOrder": "latest"},
        )
        return parse_cryptocompare(payload, self._limit)


class NewsApiAdapter(_RetryingAdapter):
    """NewsAPI query; disabled (returns no items) when no key is configured."""

    def __init__(
        self,
        fetcher: HttpFetcher,
        url: str,
        params: dict[str, str],
        api_key: str,
        category: str,
        limit: int,
        timeout: float,
        retry: RetryPolicy,
        label: str,
    ) -> None:
        super().__init__(fetcher, category, limit, timeout, retry)
        self._url = url
        self._params = params
        self._api_key = api_key
        self.label = label

    async def fetch(self) -> list[CandidateItem]:
        if not self._api_key:
            LOGGER.warning("NEWS_API_KEY not set, skipping %s", self.label)
            return []
        return await super().fetch()

    async def _fetch_once(self) -> list[CandidateItem]:
        payload = await self._fetcher.get_json(
            self._url,
            self._timeout,
            headers={"X-Api-Key": self._api_key},
            params=self._params,
        )
        return parse_newsapi(payload, self._category, self._limit)
