"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any feed, API or chat-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

CRYPTO = "crypto"
REGIONAL_MARKET = "regional-market"
GEOPOLITICAL = "geopolitical"

# Delivery order of categories; also the order used for the verification batch.
CATEGORIES = (CRYPTO, REGIONAL_MARKET, GEOPOLITICAL)


@dataclass(frozen=True)
class CandidateItem:
    """One news item collected in the current run."""

    title: str
    url: str
    source: str
    category: str
    published_at: Optional[datetime] = None
    summary: Optional[str] = None

    def __post_init__(self) -> None:
        if self.category not in CATEGORIES:
            raise ValueError(f"Unknown category: {self.category}")


@dataclass(frozen=True)
class VerifiedItem:
    """A candidate item annotated with a trust verdict."""

    item: CandidateItem
    is_trusted: bool
    verification_note: Optional[str] = None

    @property
    def title(self) -> str:
        return self.item.title

    @property
    def url(self) -> str:
        return self.item.url

    @property
    def source(self) -> str:
        return self.item.source

    @property
    def category(self) -> str:
        return self.item.category


@dataclass(frozen=True)
class CryptoPrice:
    symbol: str
    price_usd: float
    price_inr: Optional[float] = None
    change_24h_percent: Optional[float] = None


@dataclass(frozen=True)
class MarketQuote:
    symbol: str
    name: str
    price: float
    currency: str
    change: float
    change_percent: float
    day_high: Optional[float] = None
    day_low: Optional[float] = None
    market_state: str = "UNKNOWN"


@dataclass(frozen=True)
class MarketStatus:
    """Trading-session state of the regional market at collection time."""

    is_open: bool
    is_weekend: bool
    description: str


Facts = Union[CryptoPrice, list[MarketQuote], None]


@dataclass(frozen=True)
class CollectionResult:
    """Outcome of one category's collection.

    Errors are informational; a result with errors and no items is still a
    successful collection.
    """

    category: str
    items: tuple[CandidateItem, ...] = ()
    errors: tuple[str, ...] = ()
    facts: Facts = None
    is_weekend: bool = False


@dataclass(frozen=True)
class StoreStats:
    total: int
    today: int


@dataclass(frozen=True)
class Bulletin:
    """Payload handed to the delivery channel after each successful run."""

    crypto_price: Optional[CryptoPrice]
    quotes: tuple[MarketQuote, ...]
    market_status: MarketStatus
    items_by_category: dict[str, tuple[VerifiedItem, ...]] = field(default_factory=dict)
    errors: tuple[str, ...] = ()

    def items(self, category: str) -> tuple[VerifiedItem, ...]:
        return self.items_by_category.get(category, ())

    def trusted(self, category: str) -> list[VerifiedItem]:
        return [item for item in self.items(category) if item.is_trusted]
