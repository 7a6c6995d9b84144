"""Core domain package for newspulse.

Core contains collection, deduplication, verification and orchestration logic
without any HTTP, SQLite or Telegram-specific code, keeping the business logic
portable.
"""
