"""
Telegram Document Store

Keeps the portfolio document as a JSON file pinned in a Telegram channel.
Writes edit the pinned message's media in place; the file's
`file_unique_id` serves as the revision token.

Author: Alphalert Team
Last Updated: 2026-10-17
"""

import json
from typing import Any, Dict, Optional

from app.integrations.storage.base import DocumentStore, StoredRef
from app.integrations.telegram.bot_client import TelegramBotClient
from app.shared.exceptions import DocumentGoneError, ForeignDocumentError, StoreUnavailableError, TelegramAPIError
from app.utils.logger import get_logger

logger = get_logger(__name__)

NOT_MODIFIED_MARKERS = ("message is not modified",)
GONE_MARKERS = ("message to edit not found", "message_id_invalid", "message not found")


def _ref_from_message(message: Dict[str, Any]) -> Optional[StoredRef]:
    document = message.get("document") if message else None
    if not document:
        return None
    return StoredRef(
        message_id=message["message_id"],
        revision=document.get("file_unique_id") or document["file_id"],
        file_id=document["file_id"],
        file_name=document.get("file_name"),
    )


class TelegramDocumentStore(DocumentStore):
    """
    Pinned-message document store.

    Usage:
        bot = TelegramBotClient(token)
        store = TelegramDocumentStore(bot, channel_id="-100123", file_name="simulator-db.json")
        head = await store.fetch_head()
    """

    def __init__(self, bot: TelegramBotClient, channel_id: str, file_name: str = "simulator-db.json"):
        self.bot = bot
        self.channel_id = channel_id
        self.file_name = file_name

    async def fetch_head(self) -> Optional[StoredRef]:
        try:
            chat = await self.bot.call("getChat", {"chat_id": self.channel_id})
        except TelegramAPIError as e:
            raise StoreUnavailableError(f"Failed to read pinned document: {e.description}")

        pinned = (chat or {}).get("pinned_message")
        if not pinned:
            return None

        ref = _ref_from_message(pinned)
        if ref is None:
            # Something else is pinned over the document; never treat that as empty
            raise ForeignDocumentError(
                f"Pinned message {pinned.get('message_id')} in {self.channel_id} is not a document"
            )
        return ref

    async def download(self, ref: StoredRef) -> bytes:
        try:
            return await self.bot.download_file(ref.file_id)
        except TelegramAPIError as e:
            raise StoreUnavailableError(f"Failed to download {ref.file_name or ref.file_id}: {e.description}")

    async def create(self, content: bytes, caption: Optional[str] = None) -> StoredRef:
        data: Dict[str, Any] = {"chat_id": self.channel_id}
        if caption:
            data["caption"] = caption
            data["parse_mode"] = "HTML"
        files = {"document": (self.file_name, content, "application/json")}

        try:
            message = await self.bot.call_form("sendDocument", data=data, files=files)
            ref = _ref_from_message(message)
            if ref is None:
                raise StoreUnavailableError("sendDocument returned no document")
            await self.bot.call("pinChatMessage", {
                "chat_id": self.channel_id,
                "message_id": ref.message_id,
                "disable_notification": True,
            })
        except TelegramAPIError as e:
            raise StoreUnavailableError(f"Failed to create document: {e.description}")

        logger.info(f"Stored new document copy as message {ref.message_id}")
        return ref

    async def replace(self, ref: StoredRef, content: bytes, caption: Optional[str] = None) -> StoredRef:
        media: Dict[str, Any] = {"type": "document", "media": "attach://document"}
        if caption:
            media["caption"] = caption
            media["parse_mode"] = "HTML"
        data = {
            "chat_id": self.channel_id,
            "message_id": str(ref.message_id),
            "media": json.dumps(media),
        }
        files = {"document": (self.file_name, content, "application/json")}

        try:
            message = await self.bot.call_form("editMessageMedia", data=data, files=files)
        except TelegramAPIError as e:
            description = e.description.lower()
            if any(marker in description for marker in NOT_MODIFIED_MARKERS):
                logger.debug(f"Document {ref.message_id} unchanged")
                return ref
            if any(marker in description for marker in GONE_MARKERS):
                raise DocumentGoneError(f"Message {ref.message_id} is gone: {e.description}")
            raise StoreUnavailableError(f"Failed to update document: {e.description}")

        new_ref = _ref_from_message(message) if isinstance(message, dict) else None
        if new_ref is None:
            raise StoreUnavailableError("editMessageMedia returned no document")
        return new_ref
