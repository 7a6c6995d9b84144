"""Source catalog: which adapters feed which category.

Endpoints and per-adapter caps live here so the collectors stay generic.
"""

from __future__ import annotations

from newspulse.adapters.feeds import (
    AggregatorSearchAdapter,
    CryptoCompareNewsAdapter,
    NewsApiAdapter,
    RssFeedAdapter,
)
from newspulse.adapters.http import HttpFetcher
from newspulse.adapters.quotes import CoinGeckoPriceSource, YahooQuoteSource
from newspulse.core.collector import SourceCollector
from newspulse.core.config import CollectionConfig
from newspulse.core.models import CRYPTO, GEOPOLITICAL, REGIONAL_MARKET

CRYPTO_RSS_FEEDS = (
    ("https://www.coindesk.com/feed/", "CoinDesk"),
    ("https://cointelegraph.com/rss", "CoinTelegraph"),
)
CRYPTO_SEARCH_QUERIES = ("bitcoin crypto cryptocurrency",)

MARKET_RSS_FEEDS = (
    ("https://www.moneycontrol.com/rss/marketreports.xml", "Moneycontrol"),
    ("https://economictimes.indiatimes.com/markets/rssfeeds/1977021501.cms", "Economic Times"),
    ("https://www.livemint.com/rss/markets", "LiveMint"),
)
MARKET_SEARCH_QUERIES = (
    "TCS stock news",
    "CDSL stock news",
    "HUL Hindustan Unilever stock",
    "Gold price India",
    "Indian stock market today",
)

GEOPOLITICAL_RSS_FEEDS = (
    ("https://feeds.bbci.co.uk/news/world/rss.xml", "BBC World"),
    ("https://www.aljazeera.com/xml/rss/all.xml", "Al Jazeera"),
)
GEOPOLITICAL_SEARCH_QUERIES = (
    "world news today international",
    "geopolitics trade war sanctions",
)

NEWSAPI_EVERYTHING_URL = "https://newsapi.org/v2/everything"
NEWSAPI_TOP_HEADLINES_URL = "https://newsapi.org/v2/top-headlines"

CATEGORY_CAP = 8
MARKET_WEEKDAY_CAP = 10
MARKET_WEEKEND_CAP = 5


def build_crypto_collector(fetcher: HttpFetcher, config: CollectionConfig) -> SourceCollector:
    adapters = [
        CryptoCompareNewsAdapter(fetcher, CRYPTO, 10, config.feed_timeout, config.feed_retry),
        *(
            RssFeedAdapter(fetcher, url, name, CRYPTO, 10, config.feed_timeout, config.feed_retry)
            for url, name in CRYPTO_RSS_FEEDS
        ),
        *(
            AggregatorSearchAdapter(fetcher, query, CRYPTO, 8, config.feed_timeout, config.feed_retry)
            for query in CRYPTO_SEARCH_QUERIES
        ),
    ]
    return SourceCollector(
        category=CRYPTO,
        label="Crypto",
        adapters=adapters,
        cap=CATEGORY_CAP,
        facts_source=CoinGeckoPriceSource(fetcher, config.price_timeout, config.price_retry),
        timezone_name=config.timezone,
    )


def build_market_collector(fetcher: HttpFetcher, config: CollectionConfig) -> SourceCollector:
    adapters = [
        *(
            AggregatorSearchAdapter(
                fetcher,
                query,
                REGIONAL_MARKET,
                5,
                config.feed_timeout,
                config.feed_retry,
                region="IN",
            )
            for query in MARKET_SEARCH_QUERIES
        ),
        NewsApiAdapter(
            fetcher,
            NEWSAPI_EVERYTHING_URL,
            {
                "q": "indian stock market OR NSE OR Sensex",
                "language": "en",
                "sortBy": "publishedAt",
                "pageSize": "10",
            },
            config.news_api_key,
            REGIONAL_MARKET,
            10,
            config.feed_timeout,
            config.feed_retry,
            label="NewsAPI stocks",
        ),
        *(
            RssFeedAdapter(fetcher, url, name, REGIONAL_MARKET, 8, config.feed_timeout, config.feed_retry)
            for url, name in MARKET_RSS_FEEDS
        ),
    ]
    return SourceCollector(
        category=REGIONAL_MARKET,
        label="Market",
        adapters=adapters,
        cap=MARKET_WEEKDAY_CAP,
        weekend_cap=MARKET_WEEKEND_CAP,
        facts_source=YahooQuoteSource(config.tracked_stocks, config.price_timeout, config.feed_retry),
        timezone_name=config.timezone,
    )


def build_geopolitical_collector(fetcher: HttpFetcher, config: CollectionConfig) -> SourceCollector:
    adapters = [
        *(
            RssFeedAdapter(fetcher, url, name, GEOPOLITICAL, 15, config.feed_timeout, config.feed_retry)
            for url, name in GEOPOLITICAL_RSS_FEEDS
        ),
        *(
            AggregatorSearchAdapter(fetcher, query, GEOPOLITICAL, 10, config.feed_timeout, config.feed_retry)
            for query in GEOPOLITICAL_SEARCH_QUERIES
        ),
        NewsApiAdapter(
            fetcher,
            NEWSAPI_TOP_HEADLINES_URL,
            {"category": "general", "language": "en", "pageSize": "10"},
            config.news_api_key,
            GEOPOLITICAL,
            10,
            config.feed_timeout,
            config.feed_retry,
            label="NewsAPI geopolitical",
        ),
    ]
    return SourceCollector(
        category=GEOPOLITICAL,
        label="Geopolitical",
        adapters=adapters,
        cap=CATEGORY_CAP,
        timezone_name=config.timezone,
    )


def build_collectors(fetcher: HttpFetcher, config: CollectionConfig) -> list[SourceCollector]:
    """Return the collectors in delivery order."""

    return [
        build_crypto_collector(fetcher, config),
        build_market_collector(fetcher, config),
        build_geopolitical_collector(fetcher, config),
    ]
