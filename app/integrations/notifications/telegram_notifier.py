"""
Telegram Notifier

Posts simulator events to the channel through the Bot API. Failures are
logged and swallowed so a notification can never abort a trading cycle.

Author: Alphalert Team
Last Updated: 2026-10-17
"""

from typing import Optional

from app.integrations.notifications.base import NotificationSink
from app.integrations.telegram.bot_client import TelegramBotClient
from app.shared.exceptions import TelegramAPIError
from app.utils.logger import get_logger

logger = get_logger(__name__)


class TelegramNotifier(NotificationSink):
    """
    Telegram Notifier

    Usage:
        notifier = TelegramNotifier(bot, chat_id="-100123", forward_chat_id="@signals")
        await notifier.send("<b>NEW POSITION</b> ...")
        await notifier.forward_signal("So1...")
    """

    def __init__(
        self,
        bot: TelegramBotClient,
        chat_id: str,
        forward_chat_id: Optional[str] = None
    ):
        self.bot = bot
        self.chat_id = chat_id
        self.forward_chat_id = forward_chat_id

    async def _deliver(self, chat_id: str, text: str, parse_mode: Optional[str]) -> bool:
        try:
            await self.bot.send_message(chat_id, text, parse_mode=parse_mode)
            return True
        except TelegramAPIError as e:
            logger.error(f"Failed to send message to {chat_id}: {e.description}")
            return False

    async def send(self, text: str) -> bool:
        return await self._deliver(self.chat_id, text, "HTML")

    async def forward_signal(self, text: str) -> bool:
        if not self.forward_chat_id:
            return False
        sent = await self._deliver(self.forward_chat_id, text, None)
        if sent:
            logger.info(f"Forwarded signal to {self.forward_chat_id}")
        return sent

    async def close(self) -> None:
        await self.bot.close()
