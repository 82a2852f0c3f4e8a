from __future__ import annotations

import logging
from typing import Optional, Protocol

from telegram import Bot
from telegram.constants import ParseMode
from telegram.error import TelegramError

from ..errors import AlertDeliveryError


logger = logging.getLogger(__name__)

TELEGRAM_MAX_MESSAGE_LENGTH = 4096


class AlertSink(Protocol):
    async def notify(self, message: str) -> None:
        """Best-effort delivery to the operator channel. Must never raise."""
        ...


class LoggingAlertSink:
    """Fallback sink when no chat channel is configured (or alerts are disabled)."""

    def __init__(self) -> None:
        self.sent: list[str] = []

    async def notify(self, message: str) -> None:
        self.sent.append(message)
        logger.warning("ALERT: %s", message)


class TelegramAlertSink:
    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        *,
        parse_mode: Optional[str] = ParseMode.MARKDOWN,
        bot: Optional[Bot] = None,
    ) -> None:
        self.chat_id = (chat_id or "").strip()
        self.parse_mode = parse_mode
        token = (bot_token or "").strip()
        self._bot = bot if bot is not None else (Bot(token) if token else None)

    @property
    def configured(self) -> bool:
        return self._bot is not None and bool(self.chat_id)

    async def notify(self, message: str) -> None:
        if not self.configured:
            logger.error("TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID is missing; alert not sent: %s", message)
            return

        text = message if len(message) <= TELEGRAM_MAX_MESSAGE_LENGTH else message[: TELEGRAM_MAX_MESSAGE_LENGTH - 1] + "…"
        try:
            await self._send(text)
        except AlertDeliveryError as e:
            logger.error("%s", e)
            return
        logger.info("Telegram alert sent.")

    async def _send(self, text: str) -> None:
        try:
            async with self._bot:
                await self._bot.send_message(chat_id=self.chat_id, text=text, parse_mode=self.parse_mode)
        except TelegramError as e:
            raise AlertDeliveryError(f"Telegram API error: {e}") from e
        except Exception as e:
            raise AlertDeliveryError(f"Telegram request failed: {e}") from e


def build_alert_sink(bot_token: str, chat_id: str, *, enabled: bool = True) -> AlertSink:
    if not enabled:
        return LoggingAlertSink()
    if not (bot_token or "").strip() or not (chat_id or "").strip():
        logger.warning("Telegram is not configured; alerts will only be logged.")
        return LoggingAlertSink()
    return TelegramAlertSink(bot_token, chat_id)
