from __future__ import annotations

from datetime import datetime, timezone

from newspulse.core.market_status import is_weekend, market_status

TZ = "Asia/Kolkata"


def test_open_during_session() -> None:
    # 05:00 UTC Monday is 10:30 IST.
    status = market_status(TZ, datetime(2025, 1, 6, 5, 0, tzinfo=timezone.utc))
    assert status.is_open is True
    assert status.description == "Market is open."


def test_pre_market_and_after_close() -> None:
    pre = market_status(TZ, datetime(2025, 1, 6, 2, 0, tzinfo=timezone.utc))
    post = market_status(TZ, datetime(2025, 1, 6, 12, 0, tzinfo=timezone.utc))
    assert pre.is_open is False
    assert pre.description.startswith("Pre-market")
    assert post.is_open is False
    assert post.description.startswith("Market closed.")


def test_weekend_is_closed() -> None:
    status = market_status(TZ, datetime(2025, 1, 5, 6, 0, tzinfo=timezone.utc))
    assert status.is_weekend is True
    assert status.is_open is False


def test_weekend_follows_local_calendar() -> None:
    # Sunday 19:00 UTC is already Monday 00:30 in Kolkata.
    assert is_weekend(TZ, datetime(2025, 1, 5, 19, 0, tzinfo=timezone.utc)) is False
