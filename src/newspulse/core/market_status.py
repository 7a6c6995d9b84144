"""Regional market session helpers.

Weekend detection and session state use the market's local calendar, not the
host clock, so a server in UTC still sees Saturday morning in Mumbai as a
weekend.
"""

from __future__ import annotations

from datetime import datetime, time
from typing import Optional
from zoneinfo import ZoneInfo

from newspulse.core.models import MarketStatus

MARKET_OPEN = time(9, 15)
MARKET_CLOSE = time(15, 30)


def local_now(timezone: str, now: Optional[datetime] = None) -> datetime:
    """Return now (or the given aware datetime) in the market's timezone."""

    tz = ZoneInfo(timezone)
    if now is None:
        return datetime.now(tz)
    return now.astimezone(tz)


def is_weekend(timezone: str, now: Optional[datetime] = None) -> bool:
    return local_now(timezone, now).weekday() >= 5


def market_status(timezone: str, now: Optional[datetime] = None) -> MarketStatus:
    """Describe the trading session at the given instant."""

    local = local_now(timezone, now)
    weekend = local.weekday() >= 5
    current = local.time().replace(second=0, microsecond=0)
    is_open = not weekend and MARKET_OPEN <= current <= MARKET_CLOSE

    if weekend:
        description = "Market closed (weekend). Opens Monday 9:15 AM IST."
    elif current < MARKET_OPEN:
        description = "Pre-market. Opens at 9:15 AM IST."
    elif current > MARKET_CLOSE:
        description = "Market closed. Last close prices shown."
    else:
        description = "Market is open."

    return MarketStatus(is_open=is_open, is_weekend=weekend, description=description)
