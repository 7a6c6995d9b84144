"""Price and quote sources collected alongside category news."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional, Sequence

import yfinance as yf

from newspulse.adapters.http import HttpFetcher
from newspulse.core.config import RetryPolicy
from newspulse.core.fanout import settle_all, with_retry
from newspulse.core.models import CryptoPrice, MarketQuote

LOGGER = logging.getLogger(__name__)

COINGECKO_PRICE_URL = "https://api.coingecko.com/api/v3/simple/price"


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_coingecko(payload: Any) -> CryptoPrice:
    """Build the BTC price from a CoinGecko simple/price response."""

    bitcoin = payload.get("bitcoin") if isinstance(payload, dict) else None
    if not isinstance(bitcoin, dict) or _optional_float(bitcoin.get("usd")) is None:
        raise ValueError("CoinGecko response has no bitcoin.usd price")
    return CryptoPrice(
        symbol="BTC",
        price_usd=float(bitcoin["usd"]),
        price_inr=_optional_float(bitcoin.get("inr")),
        change_24h_percent=_optional_float(bitcoin.get("usd_24h_change")),
    )


def parse_yahoo_quote(symbol: str, name: str, info: Any) -> MarketQuote:
    """Build a quote from a yfinance info mapping."""

    if not isinstance(info, dict) or _optional_float(info.get("regularMarketPrice")) is None:
        raise ValueError(f"empty quote for {symbol}")
    return MarketQuote(
        symbol=symbol,
        name=name,
        price=float(info["regularMarketPrice"]),
        currency=str(info.get("currency") or "INR"),
        change=_optional_float(info.get("regularMarketChange")) or 0.0,
        change_percent=_optional_float(info.get("regularMarketChangePercent")) or 0.0,
        day_high=_optional_float(info.get("regularMarketDayHigh")),
        day_low=_optional_float(info.get("regularMarketDayLow")),
        market_state=str(info.get("marketState") or "UNKNOWN"),
    )


class CoinGeckoPriceSource:
    label = "BTC price fetch"

    def __init__(self, fetcher: HttpFetcher, timeout: float, retry: RetryPolicy) -> None:
        self._fetcher = fetcher
        self._timeout = timeout
        self._retry = retry

    async def _fetch_once(self) -> CryptoPrice:
        payload = await self._fetcher.get_json(
            COINGECKO_PRICE_URL,
            self._timeout,
            params={
                "ids": "bitcoin",
                "vs_currencies": "usd,inr",
                "include_24hr_change": "true",
            },
        )
        return parse_coingecko(payload)

    async def fetch(self) -> CryptoPrice:
        return await with_retry(self._fetch_once, self._retry, "CoinGecko BTC price")


def _load_info(symbol: str) -> dict:
    return yf.Ticker(symbol).info


class YahooQuoteSource:
    """Quotes for the tracked symbols; each symbol settles independently.

    yfinance is blocking, so every lookup runs in a worker thread.
    """

    label = "Stock quotes"

    def __init__(
        self,
        tracked: Sequence[tuple[str, str]],
        timeout: float,
        retry: RetryPolicy,
        loader: Callable[[str], Any] = _load_info,
    ) -> None:
        self._tracked = list(tracked)
        self._timeout = timeout
        self._retry = retry
        self._loader = loader

    async def _quote(self, symbol: str, name: str) -> MarketQuote:
        info = await asyncio.wait_for(asyncio.to_thread(self._loader, symbol), timeout=self._timeout)
        return parse_yahoo_quote(symbol, name, info)

    async def _fetch_once(self) -> list[MarketQuote]:
        settled = await settle_all((symbol, self._quote(symbol, name)) for symbol, name in self._tracked)
        for symbol, error in settled.failures.items():
            LOGGER.warning("Failed to fetch quote for %s: %s", symbol, error)
        return [settled.successes[symbol] for symbol, _ in self._tracked if symbol in settled.successes]

    async def fetch(self) -> list[MarketQuote]:
        return await with_retry(self._fetch_once, self._retry, "Yahoo Finance quotes")
