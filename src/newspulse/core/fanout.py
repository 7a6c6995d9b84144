"""Concurrency helpers: settle-all fan-out and linear-backoff retry.

Every fan-out point in the pipeline (adapters inside a collector, collectors
inside the orchestrator, symbols inside the quote source) goes through
settle_all so that one failing branch never cancels its siblings.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Hashable, Iterable, TypeVar

from newspulse.core.config import RetryPolicy
from newspulse.core.errors import SourceError

LOGGER = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


@dataclass
class Settled(Generic[K, T]):
    """Results of a settle-all fan-out, split by outcome and keyed by branch."""

    successes: dict[K, T] = field(default_factory=dict)
    failures: dict[K, BaseException] = field(default_factory=dict)


async def settle_all(branches: Iterable[tuple[K, Awaitable[T]]]) -> Settled[K, T]:
    """Await every branch to completion and partition the outcomes.

    Keys preserve the order in which branches were given, so callers can rely
    on deterministic iteration regardless of which branch finishes first.
    Cancellation of the caller still propagates.
    """

    keys: list[K] = []
    awaitables: list[Awaitable[T]] = []
    for key, awaitable in branches:
        keys.append(key)
        awaitables.append(awaitable)

    outcomes = await asyncio.gather(*awaitables, return_exceptions=True)

    settled: Settled[K, T] = Settled()
    for key, outcome in zip(keys, outcomes):
        if isinstance(outcome, asyncio.CancelledError):
            raise outcome
        if isinstance(outcome, BaseException):
            settled.failures[key] = outcome
        else:
            settled.successes[key] = outcome
    return settled


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    label: str,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run operation up to policy.attempts times with linear backoff.

    The wait before attempt n+1 is n * base_delay. Exhausting the attempts
    raises SourceError naming the label.
    """

    last_error: Exception | None = None
    for attempt in range(1, policy.attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            last_error = exc
            LOGGER.warning("%s attempt %s/%s failed: %s", label, attempt, policy.attempts, exc)
            if attempt < policy.attempts:
                await sleep(policy.base_delay * attempt)
    raise SourceError(label, policy.attempts, last_error or RuntimeError("no attempts made"))
