"""
Document Store Base Classes

Port for the external store that holds the single portfolio document.
The store offers no transactions: callers compare `StoredRef.revision`
against `fetch_head()` to detect concurrent writers.

Author: Alphalert Team
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class StoredRef:
    """
    Identity of one stored copy of the document.

    Attributes:
        message_id: Locator of the stored copy (stable across edits)
        revision: Opaque token that changes on every write
        file_id: Handle used to download the content
        file_name: Name the content was stored under
    """
    message_id: int
    revision: str
    file_id: str
    file_name: Optional[str] = None


class DocumentStore(ABC):
    """
    Abstract document store.

    Implementations: TelegramDocumentStore (pinned channel document).
    """

    @abstractmethod
    async def fetch_head(self) -> Optional[StoredRef]:
        """
        Reference to the current copy, or None if nothing is stored.

        Raises:
            ForeignDocumentError: If the head holds something that is not a stored copy
            StoreUnavailableError: If the store could not be read
        """
        pass

    @abstractmethod
    async def download(self, ref: StoredRef) -> bytes:
        """Raw content of a stored copy."""
        pass

    @abstractmethod
    async def create(self, content: bytes, caption: Optional[str] = None) -> StoredRef:
        """Store a new copy and make it the head."""
        pass

    @abstractmethod
    async def replace(self, ref: StoredRef, content: bytes, caption: Optional[str] = None) -> StoredRef:
        """
        Overwrite an existing copy in place.

        Returns the unchanged ref when the store reports nothing changed.

        Raises:
            DocumentGoneError: If the copy no longer exists
            StoreUnavailableError: On any other store failure
        """
        pass
