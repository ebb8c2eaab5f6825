"""
State Store Gateway

Loads and saves the portfolio document against a DocumentStore that has no
transactions. Concurrency is optimistic: the revision seen at load time is
compared with the store head right before each write.

- Foreign or corrupted content fails the load; it is never overwritten.
- A stored copy that has disappeared is re-created and re-pinned.
- A revision mismatch raises ConcurrentModificationError; `mutate` reloads
  and retries a bounded number of times.

Author: Alphalert Team
Last Updated: 2026-10-17
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar, Union

from pydantic import ValidationError as PydanticValidationError

from app.integrations.storage.base import DocumentStore, StoredRef
from app.modules.positions.engine import HISTORY_LIMIT, PositionEngine
from app.modules.positions.formatters import format_portfolio_caption
from app.modules.positions.models import SCHEMA_VERSION, PortfolioDocument
from app.shared.exceptions import (
    ConcurrentModificationError,
    ConfirmationRequiredError,
    CorruptedDocumentError,
    DocumentGoneError,
    ForeignDocumentError,
)
from app.utils.logger import get_logger
from app.utils.timeutils import now_ms

logger = get_logger(__name__)

RESET_CONFIRMATION = "RESET"

T = TypeVar("T")


# ==================== CLASSIFICATION ====================

class DocumentState(str, Enum):
    """What a stored payload turned out to be"""
    VALID = "valid"
    FOREIGN = "foreign"
    CORRUPTED = "corrupted"


@dataclass
class Classification:
    state: DocumentState
    document: Optional[PortfolioDocument] = None
    reason: str = ""


def classify_payload(content: Union[bytes, str, Any]) -> Classification:
    """
    Classify raw stored content before anything is mutated.

    Args:
        content: Raw bytes/str from the store, or an already-decoded object

    Returns:
        Classification with the parsed document when valid
    """
    payload = content
    if isinstance(content, (bytes, bytearray, str)):
        try:
            payload = json.loads(content)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            return Classification(DocumentState.CORRUPTED, reason=f"undecodable JSON: {str(e)}")

    if not isinstance(payload, dict):
        return Classification(DocumentState.FOREIGN, reason=f"expected a JSON object, got {type(payload).__name__}")

    missing = [key for key in ("positions", "stats") if key not in payload]
    if missing:
        return Classification(DocumentState.FOREIGN, reason=f"missing keys: {', '.join(missing)}")

    version = payload.get("version", SCHEMA_VERSION)
    if not isinstance(version, int) or isinstance(version, bool) or version > SCHEMA_VERSION:
        return Classification(DocumentState.FOREIGN, reason=f"unsupported version: {version!r}")

    try:
        document = PortfolioDocument.from_payload(payload)
    except PydanticValidationError as e:
        return Classification(DocumentState.CORRUPTED, reason=f"schema validation failed: {e.error_count()} errors")

    return Classification(DocumentState.VALID, document=document)


# ==================== GATEWAY ====================

@dataclass
class MutationResult(Generic[T]):
    """Outcome of StateStoreGateway.mutate"""
    value: T
    engine: PositionEngine
    saved: bool
    attempts: int


class StateStoreGateway:
    """
    State Store Gateway

    One instance per invocation. Holds the StoredRef of the copy it last
    loaded or wrote; that ref is the document's identity for the next save.

    Usage:
        gateway = StateStoreGateway(store, file_name="simulator-db.json")

        document = await gateway.load()
        await gateway.save(document)

        # Reload, apply, save; retried on concurrent writes
        result = await gateway.mutate(lambda engine: engine.open_position(...))
    """

    def __init__(
        self,
        store: DocumentStore,
        file_name: Optional[str] = None,
        history_limit: int = HISTORY_LIMIT,
        max_attempts: int = 3,
        caption_builder: Optional[Callable[[PositionEngine], str]] = format_portfolio_caption,
        clock: Callable[[], int] = now_ms
    ):
        self.store = store
        self.file_name = file_name
        self.history_limit = history_limit
        self.max_attempts = max_attempts
        self.caption_builder = caption_builder
        self._clock = clock
        self.ref: Optional[StoredRef] = None

    def new_engine(self, document: PortfolioDocument) -> PositionEngine:
        return PositionEngine(document, history_limit=self.history_limit, clock=self._clock)

    # ==================== LOAD ====================

    async def load(self) -> PortfolioDocument:
        """
        Load the latest persisted document, initializing one if none exists.
        Only an empty store is initialized; any other head must be our document.

        Raises:
            ForeignDocumentError: Stored content does not belong to the simulator
            CorruptedDocumentError: Stored content is ours but unreadable
            StoreUnavailableError: The store could not be read
        """
        head = await self.store.fetch_head()

        if head is None:
            document = PortfolioDocument.new()
            self.ref = None
            await self.save(document)
            logger.info("Initialized fresh portfolio document")
            return document

        if self.file_name and head.file_name and head.file_name != self.file_name:
            raise ForeignDocumentError(
                f"Pinned file '{head.file_name}' is not '{self.file_name}'; refusing to load"
            )

        content = await self.store.download(head)
        classification = classify_payload(content)

        if classification.state == DocumentState.FOREIGN:
            raise ForeignDocumentError(f"Pinned document {head.message_id} is foreign: {classification.reason}")
        if classification.state == DocumentState.CORRUPTED:
            raise CorruptedDocumentError(f"Pinned document {head.message_id} is corrupted: {classification.reason}")

        document = classification.document
        self.ref = head
        logger.debug(f"Loaded document {head.message_id}@{head.revision}: {len(document.positions)} positions")
        return document

    # ==================== SAVE ====================

    def _serialize(self, document: PortfolioDocument) -> bytes:
        return json.dumps(document.to_payload(), indent=2).encode("utf-8")

    def _caption(self, document: PortfolioDocument) -> Optional[str]:
        if self.caption_builder is None:
            return None
        return self.caption_builder(self.new_engine(document))

    async def save(self, document: PortfolioDocument) -> StoredRef:
        """
        Persist the full document.

        Raises:
            ConcurrentModificationError: The head moved since this gateway loaded it
            ForeignDocumentError: Something other than our document is now the head
            StoreUnavailableError: The store rejected the write
        """
        document.updated = self._clock()
        content = self._serialize(document)
        caption = self._caption(document)

        if self.ref is None:
            self.ref = await self.store.create(content, caption)
            return self.ref

        head = await self.store.fetch_head()
        if head is None:
            logger.warning(f"Stored document {self.ref.message_id} is gone, creating a new copy")
            self.ref = await self.store.create(content, caption)
            return self.ref

        if head.message_id != self.ref.message_id or head.revision != self.ref.revision:
            raise ConcurrentModificationError(
                f"Head is {head.message_id}@{head.revision}, expected {self.ref.message_id}@{self.ref.revision}"
            )

        try:
            self.ref = await self.store.replace(self.ref, content, caption)
        except DocumentGoneError as e:
            logger.warning(f"Update failed, creating new copy: {e.message}")
            self.ref = await self.store.create(content, caption)
        return self.ref

    # ==================== READ-MODIFY-WRITE ====================

    async def mutate(
        self,
        fn: Callable[[PositionEngine], T],
        max_attempts: Optional[int] = None
    ) -> MutationResult[T]:
        """
        Reload, apply `fn` to a fresh engine, and save if anything changed.

        `fn` may run more than once and must only touch the engine it is given.

        Raises:
            ConcurrentModificationError: Still conflicting after max_attempts
        """
        attempts = max_attempts or self.max_attempts
        last_error: Optional[ConcurrentModificationError] = None

        for attempt in range(1, attempts + 1):
            document = await self.load()
            engine = self.new_engine(document)
            value = fn(engine)

            if not engine.dirty:
                return MutationResult(value=value, engine=engine, saved=False, attempts=attempt)

            try:
                await self.save(engine.document)
                return MutationResult(value=value, engine=engine, saved=True, attempts=attempt)
            except ConcurrentModificationError as e:
                last_error = e
                logger.warning(f"Save conflict (attempt {attempt}/{attempts}): {e.message}")

        raise last_error

    # ==================== RESET ====================

    async def reset(self, confirm: Optional[str]) -> PortfolioDocument:
        """
        Replace the document with a fresh one, stored as a new pinned copy.

        The previous copy stays in the channel as a backup.

        Raises:
            ConfirmationRequiredError: If confirm is not "RESET"
        """
        if confirm != RESET_CONFIRMATION:
            raise ConfirmationRequiredError('Send { "confirm": "RESET" } to reset all data')

        document = PortfolioDocument.new()
        self.ref = None
        await self.save(document)
        logger.warning(f"Portfolio reset, new document {self.ref.message_id}")
        return document
