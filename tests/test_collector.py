from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

from newspulse.core.collector import SourceCollector, dedupe_by_title, sort_by_recency
from newspulse.core.models import CRYPTO, REGIONAL_MARKET, CandidateItem, CryptoPrice

MONDAY = datetime(2025, 1, 6, 6, 0, tzinfo=timezone.utc)
SATURDAY = datetime(2025, 1, 4, 6, 0, tzinfo=timezone.utc)
# 20:00 UTC Friday is already Saturday 01:30 in Kolkata.
FRIDAY_NIGHT_UTC = datetime(2025, 1, 3, 20, 0, tzinfo=timezone.utc)


def _item(title: str, published_at: Optional[datetime] = None, category: str = CRYPTO, source: str = "Feed") -> CandidateItem:
    return CandidateItem(
        title=title,
        url=f"https://example.com/{title.replace(' ', '-')}",
        source=source,
        category=category,
        published_at=published_at,
    )


class FakeAdapter:
    def __init__(self, label: str, items: Optional[list[CandidateItem]] = None, error: Optional[Exception] = None) -> None:
        self.label = label
        self._items = items or []
        self._error = error
        self.calls = 0

    async def fetch(self) -> list[CandidateItem]:
        self.calls += 1
        if self._error is not None:
            raise self._error
        return list(self._items)


class FakeFacts:
    def __init__(self, label: str, value: object = None, error: Optional[Exception] = None) -> None:
        self.label = label
        self._value = value
        self._error = error

    async def fetch(self) -> object:
        if self._error is not None:
            raise self._error
        return self._value


def _collector(adapters, cap: int = 8, clock: datetime = MONDAY, category: str = CRYPTO, **kwargs) -> SourceCollector:
    return SourceCollector(
        category=category,
        label="Crypto",
        adapters=adapters,
        cap=cap,
        clock=lambda: clock,
        **kwargs,
    )


def test_cap_applies_after_sorting_newest_first() -> None:
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)
    items = [_item(f"story {i}", base + timedelta(hours=i)) for i in range(20)]
    result = asyncio.run(_collector([FakeAdapter("a", items)], cap=8).collect())

    assert len(result.items) == 8
    stamps = [item.published_at for item in result.items]
    assert stamps == sorted(stamps, reverse=True)
    assert result.items[0].title == "story 19"


def test_failed_adapter_becomes_error_without_blocking_others() -> None:
    good = FakeAdapter("good", [_item("fine story", MONDAY)])
    bad = FakeAdapter("bad", error=RuntimeError("feed down"))
    result = asyncio.run(_collector([bad, good]).collect())

    assert [item.title for item in result.items] == ["fine story"]
    assert result.errors == ("Crypto news source failed: feed down",)
    assert good.calls == 1


def test_all_adapters_failing_still_returns_a_result() -> None:
    result = asyncio.run(
        _collector([FakeAdapter("a", error=ValueError("x")), FakeAdapter("b", error=ValueError("y"))]).collect()
    )
    assert result.items == ()
    assert len(result.errors) == 2


def test_local_dedup_keeps_first_occurrence() -> None:
    first = _item("Bitcoin Hits Record", MONDAY, source="First")
    duplicate = _item("  bitcoin   hits record ", MONDAY, source="Second")
    result = asyncio.run(_collector([FakeAdapter("a", [first]), FakeAdapter("b", [duplicate])]).collect())

    assert len(result.items) == 1
    assert result.items[0].source == "First"


def test_undated_items_sort_last() -> None:
    undated = _item("undated")
    dated = _item("dated", datetime(2020, 1, 1, tzinfo=timezone.utc))
    assert [item.title for item in sort_by_recency([undated, dated])] == ["dated", "undated"]


def test_dedupe_by_title_is_order_preserving() -> None:
    items = [_item("a"), _item("b"), _item("A "), _item("c")]
    assert [item.title for item in dedupe_by_title(items)] == ["a", "b", "c"]


def test_facts_success_and_failure() -> None:
    price = CryptoPrice(symbol="BTC", price_usd=100000.0)
    ok = asyncio.run(_collector([], facts_source=FakeFacts("BTC price fetch", value=price)).collect())
    assert ok.facts == price
    assert ok.errors == ()

    failed = asyncio.run(
        _collector([], facts_source=FakeFacts("BTC price fetch", error=RuntimeError("429"))).collect()
    )
    assert failed.facts is None
    assert failed.errors == ("BTC price fetch failed: 429",)


def _market_items() -> list[CandidateItem]:
    return [_item(f"market {i}", MONDAY - timedelta(minutes=i), category=REGIONAL_MARKET) for i in range(12)]


def test_market_weekday_and_weekend_caps() -> None:
    adapters = [FakeAdapter("m", _market_items())]
    weekday = asyncio.run(
        _collector(adapters, cap=10, weekend_cap=5, category=REGIONAL_MARKET, clock=MONDAY).collect()
    )
    weekend = asyncio.run(
        _collector(adapters, cap=10, weekend_cap=5, category=REGIONAL_MARKET, clock=SATURDAY).collect()
    )

    assert len(weekday.items) == 10
    assert weekday.is_weekend is False
    assert len(weekend.items) == 5
    assert weekend.is_weekend is True


def test_weekend_uses_market_local_day() -> None:
    result = asyncio.run(
        _collector(
            [FakeAdapter("m", _market_items())],
            cap=10,
            weekend_cap=5,
            category=REGIONAL_MARKET,
            clock=FRIDAY_NIGHT_UTC,
        ).collect()
    )
    assert result.is_weekend is True
    assert len(result.items) == 5
