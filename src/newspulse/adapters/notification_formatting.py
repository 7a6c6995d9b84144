"""Bulletin formatting for the Telegram delivery adapter.

Keeping formatting here keeps the notifier a pure transport and lets the
layout be tested without a bot.
"""

from __future__ import annotations

import html
from datetime import datetime
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from newspulse.core.models import (
    CRYPTO,
    GEOPOLITICAL,
    REGIONAL_MARKET,
    Bulletin,
    CryptoPrice,
    MarketQuote,
    MarketStatus,
    VerifiedItem,
)
from newspulse.core.text import truncate
from newspulse.core.verifier import UNCERTAIN_PREFIX

TELEGRAM_MAX_LENGTH = 4096
DIVIDER = "━━━━━━━━━━━━━━━━━━━━━━━━"


def _format_price(value: float) -> str:
    return f"{value:,.2f}"


def format_news_list(items: Iterable[VerifiedItem], title_chars: int = 150) -> str:
    lines = []
    for index, item in enumerate(items, start=1):
        title = html.escape(truncate(item.title, title_chars))
        source = html.escape(item.source)
        entry = f"{index}. {title}\n   <i>{source}</i>"
        if item.url:
            entry += f' | <a href="{html.escape(item.url)}">Read</a>'
        if item.verification_note and item.verification_note.startswith(UNCERTAIN_PREFIX):
            entry += f"\n   ⚠️ {html.escape(item.verification_note)}"
        lines.append(entry)
    return "\n\n".join(lines)


def format_header(now: datetime, timezone_name: str) -> str:
    local = now.astimezone(ZoneInfo(timezone_name))
    stamp = html.escape(local.strftime("%d %b %Y | %I:%M %p"))
    return f"📰 <b>NEWS PULSE</b> | {stamp}\n{DIVIDER}"


def format_crypto_section(price: Optional[CryptoPrice], items: list[VerifiedItem], title_chars: int = 150) -> str:
    if price is not None:
        price_text = f"${_format_price(price.price_usd)}"
        if price.price_inr:
            price_text += f" (₹{_format_price(price.price_inr)})"
        if price.change_24h_percent is not None:
            price_text += f" {price.change_24h_percent:+.2f}% 24h"
    else:
        price_text = "N/A"

    body = format_news_list(items[:5], title_chars) if items else "<i>No verified crypto news available.</i>"
    return f"🪙 <b>CRYPTO</b>\n\n💰 <b>BTC:</b> {price_text}\n\n{body}"


def format_quote(quote: MarketQuote) -> str:
    marker = "🟢" if quote.change >= 0 else "🔴"
    return (
        f"{marker} <b>{html.escape(quote.name)}</b>: ₹{_format_price(quote.price)} "
        f"({quote.change_percent:+.2f}%)"
    )


def format_market_section(
    quotes: Iterable[MarketQuote],
    items: list[VerifiedItem],
    status: MarketStatus,
    title_chars: int = 150,
) -> str:
    marker = "🟢" if status.is_open else "🔴"
    parts = [
        f"{DIVIDER}\n🇮🇳 <b>INDIAN MARKET</b>",
        f"📊 {marker} <i>{html.escape(status.description)}</i>",
    ]
    quote_lines = [format_quote(quote) for quote in quotes]
    if quote_lines:
        parts.append("\n".join(quote_lines))
    if items:
        parts.append(format_news_list(items[:10], title_chars))
    elif not status.is_weekend:
        parts.append("<i>No verified market news available.</i>")
    return "\n\n".join(parts)


def format_geopolitical_section(items: list[VerifiedItem], title_chars: int = 150) -> str:
    body = format_news_list(items[:5], title_chars) if items else "<i>No verified geopolitical news available.</i>"
    return f"{DIVIDER}\n🌍 <b>GLOBAL NEWS</b>\n\n{body}"


def format_footer() -> str:
    return f"{DIVIDER}\n⏱️ ~5 min read | Verified by AI"


def split_at_lines(text: str, limit: int = TELEGRAM_MAX_LENGTH) -> list[str]:
    """Split text into chunks no longer than limit, breaking on newlines."""

    chunks: list[str] = []
    current = ""
    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks


def format_bulletin(bulletin: Bulletin, now: datetime, timezone_name: str, title_chars: int = 150) -> list[str]:
    """Render the bulletin as one or more Telegram HTML messages.

    Only trusted items are rendered. When the whole bulletin does not fit in
    one message it is sent per section, and oversized sections are split on
    line boundaries.
    """

    header = format_header(now, timezone_name)
    crypto = format_crypto_section(bulletin.crypto_price, bulletin.trusted(CRYPTO), title_chars)
    market = format_market_section(
        bulletin.quotes,
        bulletin.trusted(REGIONAL_MARKET),
        bulletin.market_status,
        title_chars,
    )
    geopolitical = format_geopolitical_section(bulletin.trusted(GEOPOLITICAL), title_chars)
    footer = format_footer()

    full = "\n\n".join([header, crypto, market, geopolitical, footer])
    if len(full) <= TELEGRAM_MAX_LENGTH:
        messages = [full]
    else:
        messages = []
        for section in (f"{header}\n\n{crypto}", market, f"{geopolitical}\n\n{footer}"):
            if section.strip():
                messages.extend(split_at_lines(section))

    if bulletin.errors:
        messages.append(f"<i>Note: {len(bulletin.errors)} data source(s) had issues.</i>")
    return messages


def format_error_notice(message: str) -> str:
    return f"⚠️ <b>News Pipeline Error</b>\n<pre>{html.escape(message[:500])}</pre>"
