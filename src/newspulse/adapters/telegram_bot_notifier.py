"""Telegram Bot API delivery adapter.

Uses the Bot API for delivery so bulletins can be routed to any chat the bot
is a member of.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

import aiohttp

from newspulse.adapters.notification_formatting import format_bulletin, format_error_notice
from newspulse.core.config import NotificationConfig
from newspulse.core.errors import DeliveryError
from newspulse.core.models import Bulletin

LOGGER = logging.getLogger(__name__)

SEND_TIMEOUT_SECONDS = 10
MESSAGE_INTERVAL_SECONDS = 0.5


class TelegramBotNotifier:
    """DeliveryPort adapter that sends HTML messages via the Telegram Bot API."""

    def __init__(
        self,
        config: NotificationConfig,
        timezone_name: str,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._config = config
        self._timezone_name = timezone_name
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _endpoint(self) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._config.bot_token}/sendMessage"

    async def _post(self, session: aiohttp.ClientSession, text: str) -> None:
        payload = {
            "chat_id": self._config.chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        async with session.post(self._endpoint(), json=payload) as response:
            if response.status >= 400:
                body = await response.text()
                raise DeliveryError(f"Bot API error {response.status}: {body}")

    async def send_messages(self, messages: list[str]) -> None:
        timeout = aiohttp.ClientTimeout(total=SEND_TIMEOUT_SECONDS)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            for index, text in enumerate(messages):
                if index:
                    await asyncio.sleep(MESSAGE_INTERVAL_SECONDS)
                await self._post(session, text)

    async def send_bulletin(self, bulletin: Bulletin) -> None:
        messages = format_bulletin(bulletin, self._clock(), self._timezone_name, self._config.title_chars)
        await self.send_messages(messages)
        LOGGER.info("News bulletin sent (%s message(s))", len(messages))

    async def send_error(self, message: str) -> None:
        await self.send_messages([format_error_notice(message)])
