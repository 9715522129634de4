"""Telegram Bot API notification adapter.

Uses the Bot API for delivery so alerts can be routed to a bot chat.
"""

from __future__ import annotations

from typing import Optional

import httpx

from adapters.notification_formatting import format_notification
from core.config import TelegramConfig
from core.errors import NotifierError
from core.models import Clock, TargetStatus, utcnow


class TelegramBotNotifier:
    """Notifier adapter that sends alerts via the Telegram Bot API."""

    def __init__(
        self,
        config: TelegramConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Clock = utcnow,
    ) -> None:
        self._config = config
        self._transport = transport
        self._clock = clock

    def _endpoint(self) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._config.bot_token}/sendMessage"

    async def send(self, status: TargetStatus) -> bool:
        """Send the formatted alert via the Bot API."""

        payload = {
            "chat_id": self._config.chat_id,
            "text": format_notification(status, self._clock(), mode="html"),
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=15.0) as client:
                response = await client.post(self._endpoint(), json=payload)
        except httpx.HTTPError as exc:
            message = f"{type(exc).__name__}: {exc}".replace(self._config.bot_token, "<redacted>")
            raise NotifierError(f"Bot API request failed: {message}") from exc

        if response.status_code != 200:
            raise NotifierError(f"Bot API error {response.status_code}: {response.text}")
        return True
