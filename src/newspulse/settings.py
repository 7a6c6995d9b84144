"""Settings loading for newspulse.

Secrets (API keys, bot token) come from the environment via python-dotenv.
Everything else lives in a single JSON file for quick edits without touching
Python. The result is an immutable AppSettings value passed explicitly into
each component.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Optional

from dotenv import load_dotenv

from newspulse.core.config import (
    DEFAULT_TIER1_SOURCES,
    CollectionConfig,
    NotificationConfig,
    PipelineConfig,
    RetryPolicy,
    StorageConfig,
    VerificationConfig,
)
from newspulse.core.errors import ConfigError

CONFIG_ENV_VAR = "NEWSPULSE_CONFIG"
DEFAULT_CONFIG_PATH = "config.json"
DEFAULT_DB_PATH = os.path.join("data", "news.db")

# Environment variables whose values are masked in log output.
SECRET_ENV_VARS = (
    "TELEGRAM_BOT_TOKEN",
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "OPENROUTER_API_KEY",
    "NEWS_API_KEY",
)

# Provider name -> environment variable holding its API key.
PROVIDER_KEY_ENV = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
}


@dataclass(frozen=True)
class AppSettings:
    """Everything the app layer needs to wire one pipeline."""

    config_path: str
    storage: StorageConfig
    collection: CollectionConfig
    verification: VerificationConfig
    pipeline: PipelineConfig
    notifications: NotificationConfig
    logging: dict[str, Any] = field(default_factory=dict)


def resolve_config_path(path: Optional[str] = None) -> str:
    return os.path.abspath(path or os.getenv(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)


def _load_json_config(path: str) -> dict:
    """Load the JSON config file with a flat, user-friendly schema."""

    if not os.path.exists(path):
        raise ConfigError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as handle:
        try:
            data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be an object: {path}")
    return data


def _section(config: dict, name: str) -> dict:
    value = config.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{name}' must be an object")
    return value


def _retry(raw: dict, attempts_key: str, delay_key: str, default: RetryPolicy) -> RetryPolicy:
    try:
        return RetryPolicy(
            attempts=max(1, int(raw.get(attempts_key, default.attempts))),
            base_delay=float(raw.get(delay_key, default.base_delay)),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid retry setting: {exc}") from exc


def _number(raw: dict, key: str, default: float, cast=float):
    try:
        return cast(raw.get(key, default))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid value for '{key}': {raw.get(key)!r}") from exc


def _tracked_stocks(entries: Any) -> tuple[tuple[str, str], ...]:
    if not isinstance(entries, list):
        raise ConfigError("collection.tracked_stocks must be a list")
    tracked = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("symbol"):
            raise ConfigError(f"Tracked stock entry needs a 'symbol': {entry!r}")
        symbol = str(entry["symbol"])
        tracked.append((symbol, str(entry.get("name") or symbol)))
    return tuple(tracked)


def _tier1_sources(raw: Any) -> tuple[str, ...]:
    if not isinstance(raw, list):
        raise ConfigError("verification.tier1_sources must be a list")
    # Blank names would match every source.
    return tuple(name.strip() for name in map(str, raw) if name.strip())


def _resolve_path(base_dir: str, path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(base_dir, path)


def load_settings(path: Optional[str] = None, environ: Optional[dict[str, str]] = None) -> AppSettings:
    """Build AppSettings from the JSON config plus environment secrets.

    Relative paths inside the config (database, log file) resolve against
    the config file's directory.
    """

    if environ is None:
        load_dotenv()
        environ = dict(os.environ)

    config_path = resolve_config_path(path)
    raw = _load_json_config(config_path)
    base_dir = os.path.dirname(config_path)

    storage_raw = _section(raw, "storage")
    collection_raw = _section(raw, "collection")
    verification_raw = _section(raw, "verification")
    pipeline_raw = _section(raw, "pipeline")
    notifications_raw = _section(raw, "notifications")

    retention_days = _number(storage_raw, "retention_days", 7, int)
    storage = StorageConfig(
        db_path=_resolve_path(base_dir, storage_raw.get("db_path", DEFAULT_DB_PATH)),
        retention_days=retention_days,
    )

    defaults = CollectionConfig()
    tracked = collection_raw.get("tracked_stocks")
    collection = CollectionConfig(
        timezone=collection_raw.get("timezone", defaults.timezone),
        user_agent=collection_raw.get("user_agent", defaults.user_agent),
        feed_timeout=_number(collection_raw, "feed_timeout_seconds", defaults.feed_timeout),
        price_timeout=_number(collection_raw, "price_timeout_seconds", defaults.price_timeout),
        feed_retry=_retry(collection_raw, "feed_attempts", "feed_retry_delay_seconds", defaults.feed_retry),
        price_retry=_retry(collection_raw, "price_attempts", "price_retry_delay_seconds", defaults.price_retry),
        news_api_key=environ.get("NEWS_API_KEY", ""),
        tracked_stocks=_tracked_stocks(tracked) if tracked else defaults.tracked_stocks,
    )

    provider = str(verification_raw.get("provider", "anthropic")).lower()
    verification_defaults = VerificationConfig()
    verification = VerificationConfig(
        provider=provider,
        model=verification_raw.get("model", verification_defaults.model),
        api_key=environ.get(PROVIDER_KEY_ENV.get(provider, ""), ""),
        base_url=verification_raw.get("base_url", ""),
        max_tokens=_number(verification_raw, "max_tokens", verification_defaults.max_tokens, int),
        retry=_retry(verification_raw, "max_retries", "retry_delay_seconds", verification_defaults.retry),
        tier1_sources=_tier1_sources(verification_raw.get("tier1_sources", list(DEFAULT_TIER1_SOURCES))),
    )

    pipeline = PipelineConfig(
        retention_days=retention_days,
        run_timeout_seconds=_number(pipeline_raw, "run_timeout_seconds", 300.0),
    )

    notifications = NotificationConfig(
        bot_token=environ.get("TELEGRAM_BOT_TOKEN", ""),
        chat_id=str(notifications_raw.get("bot_chat_id") or environ.get("TELEGRAM_CHAT_ID", "")),
    )

    logging_config = raw.get("logging", {})
    file_cfg = logging_config.get("file") if isinstance(logging_config, dict) else None
    if isinstance(file_cfg, dict) and file_cfg.get("path"):
        logging_config = {**logging_config, "file": {**file_cfg, "path": _resolve_path(base_dir, file_cfg["path"])}}

    return AppSettings(
        config_path=config_path,
        storage=storage,
        collection=collection,
        verification=verification,
        pipeline=pipeline,
        notifications=notifications,
        logging=logging_config if isinstance(logging_config, dict) else {},
    )
