"""Application entry point for the newspulse bulletin pipeline."""

from __future__ import annotations

import argparse
import asyncio
import functools
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

import aiohttp
from art import tprint

from newspulse.adapters.evaluators import build_evaluator
from newspulse.adapters.http import HttpFetcher
from newspulse.adapters.run_lock import RunLock, lock_path_for
from newspulse.adapters.sqlite_storage import SQLiteSeenStore
from newspulse.adapters.telegram_bot_notifier import TelegramBotNotifier
from newspulse.core.errors import ConfigError
from newspulse.core.market_status import market_status
from newspulse.core.models import Bulletin
from newspulse.core.pipeline import PipelineOrchestrator
from newspulse.core.verifier import VerificationService
from newspulse.settings import SECRET_ENV_VARS, AppSettings, load_settings
from newspulse.sources import build_collectors

NAME = "NEWSPULSE"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {})
    if not redact_cfg.get("enabled", True):
        return []
    values = []
    for name in redact_cfg.get("patterns", SECRET_ENV_VARS):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(config: dict) -> None:
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", os.path.join("logs", "newspulse.log"))
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers, force=True)


def _open_store(settings: AppSettings) -> SQLiteSeenStore:
    # Failing to open the store is fatal to the run.
    store = SQLiteSeenStore(settings.storage.db_path)
    store.init_db()
    return store


def _build_notifier(settings: AppSettings) -> TelegramBotNotifier:
    if not settings.notifications.bot_token:
        raise ConfigError("TELEGRAM_BOT_TOKEN is required")
    if not settings.notifications.chat_id:
        raise ConfigError("TELEGRAM_CHAT_ID (or notifications.bot_chat_id) is required")
    return TelegramBotNotifier(settings.notifications, settings.collection.timezone)


async def run_pipeline_once(settings: AppSettings) -> Optional[Bulletin]:
    """Wire every component from settings and run a single pipeline pass.

    Returns None without doing any work when another process holds the run
    lock for the same database.
    """

    run_lock = RunLock(lock_path_for(settings.storage.db_path))
    if not run_lock.acquire():
        return None
    with run_lock:
        return await _run_locked(settings)


async def _run_locked(settings: AppSettings) -> Optional[Bulletin]:
    store = _open_store(settings)
    verifier = VerificationService(
        evaluator=build_evaluator(settings.verification),
        tier1_sources=settings.verification.tier1_sources,
        retry=settings.verification.retry,
    )
    notifier = _build_notifier(settings)

    async with aiohttp.ClientSession() as session:
        fetcher = HttpFetcher(session, settings.collection.user_agent)
        orchestrator = PipelineOrchestrator(
            collectors=build_collectors(fetcher, settings.collection),
            store=store,
            verifier=verifier,
            delivery=notifier,
            config=settings.pipeline,
            market_status=functools.partial(market_status, settings.collection.timezone),
        )
        return await orchestrator.run_once()


def _run(settings: AppSettings) -> int:
    _print_banner()
    LOGGER.info("Starting newspulse run (config: %s)", settings.config_path)
    bulletin = asyncio.run(run_pipeline_once(settings))
    return 0 if bulletin is not None else 1


def _stats(settings: AppSettings) -> int:
    stats = _open_store(settings).stats()
    print(f"DB entries: {stats.total} total, {stats.today} today")
    return 0


def _cleanup(settings: AppSettings, days: Optional[int]) -> int:
    retention = days if days is not None else settings.storage.retention_days
    removed = _open_store(settings).cleanup(retention)
    print(f"Removed {removed} entries older than {retention} days")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="newspulse")
    parser.add_argument("--config", help="Path to config.json (default: $NEWSPULSE_CONFIG or ./config.json)")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Run one collection/verification/delivery pass")
    subparsers.add_parser("stats", help="Show deduplication store statistics")
    cleanup_parser = subparsers.add_parser("cleanup", help="Prune old deduplication records")
    cleanup_parser.add_argument("--days", type=int, default=None, help="Retention window in days")

    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    _configure_logging(settings.logging)

    try:
        if args.command == "stats":
            return _stats(settings)
        if args.command == "cleanup":
            return _cleanup(settings, args.days)
        return _run(settings)
    except ConfigError as exc:
        LOGGER.error("Configuration error: %s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
