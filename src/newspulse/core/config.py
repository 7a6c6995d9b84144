"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_TIER1_SOURCES = (
    "Reuters",
    "BBC",
    "BBC World",
    "Moneycontrol",
    "CoinDesk",
    "Economic Times",
    "LiveMint",
    "Al Jazeera",
)


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt count and linear backoff base for one kind of remote call."""

    attempts: int
    base_delay: float


@dataclass(frozen=True)
class StorageConfig:
    """Deduplication store settings."""

    db_path: str
    retention_days: int = 7


@dataclass(frozen=True)
class CollectionConfig:
    """Settings shared by the source collectors."""

    timezone: str = "Asia/Kolkata"
    user_agent: str = "NewsPulseBot/1.0"
    feed_timeout: float = 15.0
    price_timeout: float = 10.0
    feed_retry: RetryPolicy = RetryPolicy(attempts=2, base_delay=3.0)
    price_retry: RetryPolicy = RetryPolicy(attempts=3, base_delay=2.0)
    news_api_key: str = ""
    tracked_stocks: tuple[tuple[str, str], ...] = (
        ("TCS.NS", "TCS"),
        ("CDSL.NS", "CDSL"),
        ("HINDUNILVR.NS", "HUL"),
        ("GOLDBEES.NS", "GOLD"),
    )


@dataclass(frozen=True)
class VerificationConfig:
    """Evaluator selection and fallback settings."""

    provider: str = "anthropic"
    model: str = "claude-sonnet-4-20250514"
    api_key: str = ""
    base_url: str = ""
    max_tokens: int = 2048
    retry: RetryPolicy = RetryPolicy(attempts=2, base_delay=5.0)
    tier1_sources: tuple[str, ...] = field(default=DEFAULT_TIER1_SOURCES)


@dataclass(frozen=True)
class PipelineConfig:
    """Run-level settings for the orchestrator."""

    retention_days: int = 7
    run_timeout_seconds: float = 300.0


@dataclass(frozen=True)
class NotificationConfig:
    """Delivery settings consumed by notifier adapters."""

    bot_token: str
    chat_id: str
    title_chars: int = 150
