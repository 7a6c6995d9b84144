from __future__ import annotations

import asyncio
from typing import Optional

import aiohttp
import pytest

from newspulse.adapters.feeds import (
    CRYPTOCOMPARE_NEWS_URL,
    GOOGLE_NEWS_SEARCH_URL,
    AggregatorSearchAdapter,
    CryptoCompareNewsAdapter,
    NewsApiAdapter,
    RssFeedAdapter,
    _RetryingAdapter,
)
from newspulse.adapters.http import FEED_ACCEPT, HttpFetcher
from newspulse.core.config import CollectionConfig, RetryPolicy
from newspulse.core.errors import SourceError
from newspulse.core.models import CRYPTO, GEOPOLITICAL, REGIONAL_MARKET

NO_WAIT_RETRY = RetryPolicy(attempts=2, base_delay=0.0)

RSS = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>t</title>
<item><title>Ether upgrade ships - CoinDesk</title><link>https://example.com/eth</link></item>
</channel></rss>
"""


class FakeFetcher:
    def __init__(self, text: str = RSS, payload: object = None, error: Optional[Exception] = None) -> None:
        self.calls: list[dict] = []
        self._text = text
        self._payload = payload
        self._error = error

    def _record(self, kind: str, url: str, timeout: float, headers, params) -> None:
        self.calls.append({"kind": kind, "url": url, "timeout": timeout, "headers": headers, "params": params})
        if self._error is not None:
            raise self._error

    async def get_text(self, url: str, timeout: float, headers=None, params=None) -> str:
        self._record("text", url, timeout, headers, params)
        return self._text

    async def get_json(self, url: str, timeout: float, headers=None, params=None) -> object:
        self._record("json", url, timeout, headers, params)
        return self._payload


class FakeResponse:
    def __init__(self, text: str) -> None:
        self._text = text

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    def raise_for_status(self) -> None:
        return None

    async def text(self) -> str:
        return self._text

    async def json(self, content_type=None) -> object:
        return {"ok": True}


class FakeSession:
    def __init__(self) -> None:
        self.requests: list[dict] = []

    def get(self, url: str, headers=None, params=None, timeout=None) -> FakeResponse:
        self.requests.append({"url": url, "headers": headers, "params": params, "timeout": timeout})
        return FakeResponse("body")


def test_fetcher_sends_user_agent_and_per_call_timeout() -> None:
    session = FakeSession()
    fetcher = HttpFetcher(session, CollectionConfig().user_agent)

    text = asyncio.run(fetcher.get_text("https://example.com/feed", 15, headers={"Accept": FEED_ACCEPT}))
    payload = asyncio.run(fetcher.get_json("https://example.com/api", 10, params={"q": "x"}))

    assert text == "body"
    assert payload == {"ok": True}
    first, second = session.requests
    assert first["headers"] == {"User-Agent": "NewsPulseBot/1.0", "Accept": FEED_ACCEPT}
    assert first["timeout"].total == 15
    assert second["headers"] == {"User-Agent": "NewsPulseBot/1.0"}
    assert second["params"] == {"q": "x"}
    assert second["timeout"].total == 10


def test_rss_adapter_attributes_items_to_publisher() -> None:
    fetcher = FakeFetcher()
    adapter = RssFeedAdapter(fetcher, "https://www.coindesk.com/feed/", "CoinDesk", CRYPTO, 10, 15, NO_WAIT_RETRY)

    items = asyncio.run(adapter.fetch())

    assert adapter.label == "RSS CoinDesk"
    assert [(item.title, item.source) for item in items] == [("Ether upgrade ships - CoinDesk", "CoinDesk")]
    assert fetcher.calls[0]["url"] == "https://www.coindesk.com/feed/"
    assert fetcher.calls[0]["timeout"] == 15
    assert fetcher.calls[0]["headers"] == {"Accept": FEED_ACCEPT}


def test_aggregator_search_params_for_default_region() -> None:
    fetcher = FakeFetcher()
    adapter = AggregatorSearchAdapter(fetcher, "world news", GEOPOLITICAL, 10, 15, NO_WAIT_RETRY)

    items = asyncio.run(adapter.fetch())

    call = fetcher.calls[0]
    assert call["url"] == GOOGLE_NEWS_SEARCH_URL
    assert call["params"] == {"q": "world news", "hl": "en", "gl": "US", "ceid": "US:en"}
    assert adapter.label == "Google News: world news"
    assert (items[0].title, items[0].source) == ("Ether upgrade ships", "CoinDesk")


def test_aggregator_search_params_for_india() -> None:
    fetcher = FakeFetcher()
    adapter = AggregatorSearchAdapter(fetcher, "TCS stock news", REGIONAL_MARKET, 5, 15, NO_WAIT_RETRY, region="IN")

    asyncio.run(adapter.fetch())

    assert fetcher.calls[0]["params"] == {"q": "TCS stock news", "hl": "en-IN", "gl": "IN", "ceid": "IN:en"}


def test_cryptocompare_adapter_requests_latest_english_news() -> None:
    payload = {"Data": [{"title": "BTC climbs", "url": "https://example.com/b", "source": "cc"}]}
    fetcher = FakeFetcher(payload=payload)
    adapter = CryptoCompareNewsAdapter(fetcher, CRYPTO, 10, 15, NO_WAIT_RETRY)

    items = asyncio.run(adapter.fetch())

    assert fetcher.calls[0]["url"] == CRYPTOCOMPARE_NEWS_URL
    assert fetcher.calls[0]["params"] == {"lang": "EN", "sortOrder": "latest"}
    assert [item.title for item in items] == ["BTC climbs"]


def _newsapi(fetcher: FakeFetcher, api_key: str) -> NewsApiAdapter:
    return NewsApiAdapter(
        fetcher,
        "https://newsapi.org/v2/everything",
        {"q": "nse"},
        api_key,
        REGIONAL_MARKET,
        10,
        15,
        NO_WAIT_RETRY,
        label="NewsAPI stocks",
    )


def test_newsapi_without_key_makes_no_request() -> None:
    fetcher = FakeFetcher(payload={"articles": []})
    adapter = _newsapi(fetcher, api_key="")

    assert asyncio.run(adapter.fetch()) == []
    assert fetcher.calls == []


def test_newsapi_sends_key_header() -> None:
    payload = {"articles": [{"title": "Sensex up", "url": "https://example.com/s", "source": {"name": "Mint"}}]}
    fetcher = FakeFetcher(payload=payload)
    adapter = _newsapi(fetcher, api_key="key-123")

    items = asyncio.run(adapter.fetch())

    assert fetcher.calls[0]["headers"] == {"X-Api-Key": "key-123"}
    assert fetcher.calls[0]["params"] == {"q": "nse"}
    assert [item.source for item in items] == ["Mint"]


def test_failing_source_raises_labelled_error_after_retries() -> None:
    fetcher = FakeFetcher(error=aiohttp.ClientError("connection reset"))
    adapter = RssFeedAdapter(fetcher, "https://www.coindesk.com/feed/", "CoinDesk", CRYPTO, 10, 15, NO_WAIT_RETRY)

    with pytest.raises(SourceError, match="RSS CoinDesk failed after 2 attempt") as excinfo:
        asyncio.run(adapter.fetch())

    assert excinfo.value.label == "RSS CoinDesk"
    assert len(fetcher.calls) == 2


def test_adapter_base_requires_a_fetch_implementation() -> None:
    with pytest.raises(TypeError):
        _RetryingAdapter(FakeFetcher(), CRYPTO, 10, 15, NO_WAIT_RETRY)
