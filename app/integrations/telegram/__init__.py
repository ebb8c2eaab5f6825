"""Telegram Bot API integration."""

from app.integrations.telegram.bot_client import TelegramBotClient

__all__ = ["TelegramBotClient"]
