"""Pipeline orchestrator.

One pass runs in a strict order:
1) Collect every category concurrently (a crashed collector degrades to an
   empty result plus an error)
2) Filter each category through the dedup store
3) Verify all new items in a single batch and split them back by category
4) Hand the bulletin to the delivery channel
5) Prune old dedup records

Any failure in steps 1-4 ends the run with a best-effort error notice; the
process keeps running and waits for the next trigger.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional, Sequence

from newspulse.core.config import PipelineConfig
from newspulse.core.fanout import settle_all
from newspulse.core.models import (
    CATEGORIES,
    CRYPTO,
    REGIONAL_MARKET,
    Bulletin,
    CandidateItem,
    CollectionResult,
    CryptoPrice,
    MarketStatus,
    VerifiedItem,
)
from newspulse.core.ports import CollectorPort, DeliveryPort, SeenStorePort, VerifierPort

LOGGER = logging.getLogger(__name__)


def partition_by_category(items: Sequence[VerifiedItem]) -> dict[str, tuple[VerifiedItem, ...]]:
    """Split verified items by the category carried on each item."""

    buckets: dict[str, list[VerifiedItem]] = {category: [] for category in CATEGORIES}
    for item in items:
        buckets.setdefault(item.category, []).append(item)
    return {category: tuple(bucket) for category, bucket in buckets.items()}


class PipelineOrchestrator:
    """Sequence collectors, dedup, verification and delivery for one run."""

    def __init__(
        self,
        collectors: Sequence[CollectorPort],
        store: SeenStorePort,
        verifier: VerifierPort,
        delivery: DeliveryPort,
        config: PipelineConfig,
        market_status: Callable[[], MarketStatus],
    ) -> None:
        self._collectors = list(collectors)
        self._store = store
        self._verifier = verifier
        self._delivery = delivery
        self._config = config
        self._market_status = market_status
        self._run_lock = asyncio.Lock()
        self._pending_write: Optional[asyncio.Future] = None

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    async def run_once(self) -> Optional[Bulletin]:
        """Run one pipeline pass; return the delivered bulletin or None."""

        if self._run_lock.locked():
            LOGGER.warning("Pipeline run requested while another run is in progress; skipping")
            return None

        async with self._run_lock:
            started = time.monotonic()
            LOGGER.info("========== Starting news pipeline ==========")
            try:
                bulletin = await asyncio.wait_for(
                    self._run_stages(),
                    timeout=self._config.run_timeout_seconds,
                )
            except Exception as exc:
                LOGGER.exception("Pipeline failed")
                await self._drain_pending_write()
                await self._notify_failure(exc)
                return None

            await self._maintenance()
            LOGGER.info(
                "========== Pipeline completed in %.1fs ==========",
                time.monotonic() - started,
            )
            return bulletin

    async def _run_stages(self) -> Bulletin:
        results = await self._collect()
        errors = [error for result in results.values() for error in result.errors]
        LOGGER.info(
            "Collection complete: %s, errors=%s",
            ", ".join(f"{category}={len(result.items)}" for category, result in results.items()),
            len(errors),
        )

        new_items: list[CandidateItem] = []
        for category in CATEGORIES:
            result = results.get(category)
            if result is None or not result.items:
                continue
            # Shielded: a run timeout must not abandon a write mid-batch.
            self._pending_write = asyncio.ensure_future(asyncio.to_thread(self._store.filter_new, result.items))
            fresh = await asyncio.shield(self._pending_write)
            self._pending_write = None
            LOGGER.info("Dedup %s: %s in, %s new", category, len(result.items), len(fresh))
            new_items.extend(fresh)

        verified: list[VerifiedItem] = []
        if new_items:
            LOGGER.info("Verifying %s news items", len(new_items))
            verified = await self._verifier.verify(new_items)
        else:
            LOGGER.info("No new news items to verify")

        items_by_category = partition_by_category(verified)
        LOGGER.info(
            "Verification complete: %s",
            ", ".join(
                f"{category}={sum(1 for item in items if item.is_trusted)}"
                for category, items in items_by_category.items()
            ),
        )

        bulletin = self._build_bulletin(results, items_by_category, errors)
        await self._delivery.send_bulletin(bulletin)
        return bulletin

    async def _collect(self) -> dict[str, CollectionResult]:
        settled = await settle_all((collector.category, collector.collect()) for collector in self._collectors)
        results: dict[str, CollectionResult] = {}
        for collector in self._collectors:
            category = collector.category
            if category in settled.failures:
                error = settled.failures[category]
                LOGGER.error("%s collector crashed: %s", category, error)
                results[category] = CollectionResult(
                    category=category,
                    errors=(f"{category} collector crashed: {error}",),
                )
            else:
                results[category] = settled.successes[category]
        return results

    def _build_bulletin(
        self,
        results: dict[str, CollectionResult],
        items_by_category: dict[str, tuple[VerifiedItem, ...]],
        errors: list[str],
    ) -> Bulletin:
        crypto_facts = results[CRYPTO].facts if CRYPTO in results else None
        market_facts = results[REGIONAL_MARKET].facts if REGIONAL_MARKET in results else None
        return Bulletin(
            crypto_price=crypto_facts if isinstance(crypto_facts, CryptoPrice) else None,
            quotes=tuple(market_facts or ()),
            market_status=self._market_status(),
            items_by_category=items_by_category,
            errors=tuple(errors),
        )

    async def _drain_pending_write(self) -> None:
        pending, self._pending_write = self._pending_write, None
        if pending is None or pending.done():
            return
        LOGGER.warning("Waiting for an in-flight dedup write to finish")
        await asyncio.wait([pending])
        if not pending.cancelled() and pending.exception() is not None:
            LOGGER.error("In-flight dedup write failed: %s", pending.exception())

    async def _notify_failure(self, exc: BaseException) -> None:
        message = str(exc) or exc.__class__.__name__
        try:
            await self._delivery.send_error(message[:500])
        except Exception:
            LOGGER.exception("Failed to send error notification")

    async def _maintenance(self) -> None:
        try:
            removed = await asyncio.to_thread(self._store.cleanup, self._config.retention_days)
        except Exception:
            LOGGER.exception("Dedup cleanup failed")
            return
        LOGGER.info("Dedup cleanup removed %s records older than %s days", removed, self._config.retention_days)
