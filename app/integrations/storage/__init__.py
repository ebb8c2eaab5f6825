"""Document store integrations."""

from app.integrations.storage.base import DocumentStore, StoredRef
from app.integrations.storage.telegram_store import TelegramDocumentStore

__all__ = ["DocumentStore", "StoredRef", "TelegramDocumentStore"]
