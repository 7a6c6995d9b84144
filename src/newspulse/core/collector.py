"""Per-category source collection.

A collector fans out to all of a category's feed adapters (and its optional
price/quote source), folds the merged items by normalized title, orders them
newest first and applies the category cap.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, Sequence

from newspulse.core.dedup import normalize_title
from newspulse.core.fanout import settle_all
from newspulse.core.market_status import is_weekend
from newspulse.core.models import CandidateItem, CollectionResult
from newspulse.core.ports import FactsSource, FeedAdapter

LOGGER = logging.getLogger(__name__)

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)
_FACTS_KEY = "facts"


def dedupe_by_title(items: Iterable[CandidateItem]) -> list[CandidateItem]:
    """Keep the first item for each normalized title."""

    seen: set[str] = set()
    unique: list[CandidateItem] = []
    for item in items:
        key = normalize_title(item.title)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def _recency_key(item: CandidateItem) -> datetime:
    published = item.published_at
    if published is None:
        return _EPOCH
    if published.tzinfo is None:
        return published.replace(tzinfo=timezone.utc)
    return published


def sort_by_recency(items: Iterable[CandidateItem]) -> list[CandidateItem]:
    """Newest first; undated items sort as the epoch."""

    return sorted(items, key=_recency_key, reverse=True)


class SourceCollector:
    """Collect one category from its adapters with settle-all semantics."""

    def __init__(
        self,
        category: str,
        label: str,
        adapters: Sequence[FeedAdapter],
        cap: int,
        facts_source: Optional[FactsSource] = None,
        weekend_cap: Optional[int] = None,
        timezone_name: str = "Asia/Kolkata",
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.category = category
        self._label = label
        self._adapters = list(adapters)
        self._cap = cap
        self._facts_source = facts_source
        self._weekend_cap = weekend_cap
        self._timezone_name = timezone_name
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def collect(self) -> CollectionResult:
        weekend = is_weekend(self._timezone_name, self._clock())
        cap = self._weekend_cap if weekend and self._weekend_cap is not None else self._cap

        branches = []
        if self._facts_source is not None:
            branches.append((_FACTS_KEY, self._facts_source.fetch()))
        branches.extend((index, adapter.fetch()) for index, adapter in enumerate(self._adapters))
        settled = await settle_all(branches)

        errors: list[str] = []
        facts = settled.successes.get(_FACTS_KEY)
        if _FACTS_KEY in settled.failures:
            error = settled.failures[_FACTS_KEY]
            errors.append(f"{self._facts_source.label} failed: {error}")
            LOGGER.error("%s failed: %s", self._facts_source.label, error)

        merged: list[CandidateItem] = []
        for index, adapter in enumerate(self._adapters):
            if index in settled.failures:
                error = settled.failures[index]
                errors.append(f"{self._label} news source failed: {error}")
                LOGGER.warning("%s source %s failed: %s", self._label, adapter.label, error)
                continue
            merged.extend(settled.successes[index])

        unique = sort_by_recency(dedupe_by_title(merged))
        LOGGER.info(
            "[%s] Fetched %s raw items, %s after local dedup, weekend=%s",
            self._label.upper(),
            len(merged),
            len(unique),
            weekend,
        )

        return CollectionResult(
            category=self.category,
            items=tuple(unique[:cap]),
            errors=tuple(errors),
            facts=facts,
            is_weekend=weekend,
        )
