"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for feeds, storage, evaluation and
delivery adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from newspulse.core.models import Bulletin, CandidateItem, CollectionResult, StoreStats, VerifiedItem


class FeedAdapter(Protocol):
    """One external news source normalized into candidate items."""

    label: str

    async def fetch(self) -> list[CandidateItem]:
        ...


class FactsSource(Protocol):
    """A price or quote source collected alongside a category's news."""

    label: str

    async def fetch(self) -> object:
        ...


class CollectorPort(Protocol):
    category: str

    async def collect(self) -> CollectionResult:
        ...


class SeenStorePort(Protocol):
    """Durable record of items already surfaced."""

    def filter_new(self, items: Sequence[CandidateItem]) -> list[CandidateItem]:
        ...

    def cleanup(self, retention_days: int = 7) -> int:
        ...

    def stats(self) -> StoreStats:
        ...


class EvaluatorPort(Protocol):
    """Natural-language trust evaluator backend."""

    name: str

    async def complete(self, system: str, prompt: str) -> str:
        ...


class VerifierPort(Protocol):
    async def verify(self, candidates: Sequence[CandidateItem]) -> list[VerifiedItem]:
        ...


class DeliveryPort(Protocol):
    """Delivery channel for finished bulletins and error notices."""

    async def send_bulletin(self, bulletin: Bulletin) -> None:
        ...

    async def send_error(self, message: str) -> None:
        ...
