"""
Pytest configuration and shared fixtures.

Provides in-memory stand-ins for the document store, price providers and
notification channel, plus a controllable clock.
"""

import os

# No log files and no real bot token during tests
os.environ.setdefault("LOG_FILE_PATH", "")
os.environ.setdefault("ENVIRONMENT", "test")

import json
from typing import Any, AsyncGenerator, Dict, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.dependencies import get_simulator_service
from app.infrastructure.state_gateway import StateStoreGateway
from app.integrations.market_data.base import MarketQuote, PriceProvider, TokenRef
from app.integrations.market_data.price_oracle import PriceOracle
from app.integrations.notifications.base import NotificationSink
from app.integrations.storage.base import DocumentStore, StoredRef
from app.main import app
from app.modules.positions.engine import PositionEngine
from app.modules.positions.models import PortfolioDocument
from app.modules.positions.service import SimulatorService
from app.shared.exceptions import DocumentGoneError, ForeignDocumentError

START_MS = 1_700_000_000_000
FILE_NAME = "simulator-db.json"


class FakeClock:
    """Epoch-ms clock that only moves when told to"""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 60_000) -> int:
        self.now += ms
        return self.now


class InMemoryDocumentStore(DocumentStore):
    """
    Dict-backed DocumentStore.

    Each message id holds content plus a revision counter that bumps on every
    write, like Telegram's file_unique_id changing on each edit.
    """

    def __init__(self, file_name: str = FILE_NAME):
        self.file_name = file_name
        self.copies: Dict[int, bytes] = {}
        self.captions: Dict[int, Optional[str]] = {}
        self.revisions: Dict[int, int] = {}
        self.head_id: Optional[int] = None
        self.pinned_text: Optional[str] = None
        self.gone_on_replace = False
        self.create_calls = 0
        self.replace_calls = 0
        self._next_message_id = 100
        self._next_revision = 1

    def _ref(self, message_id: int) -> StoredRef:
        revision = self.revisions[message_id]
        return StoredRef(
            message_id=message_id,
            revision=f"rev-{revision}",
            file_id=f"file-{message_id}-{revision}",
            file_name=self.file_name,
        )

    def _bump(self, message_id: int):
        self.revisions[message_id] = self._next_revision
        self._next_revision += 1

    # ---- DocumentStore ----

    async def fetch_head(self) -> Optional[StoredRef]:
        if self.pinned_text is not None:
            raise ForeignDocumentError(f"Pinned message is not a document: {self.pinned_text!r}")
        if self.head_id is None or self.head_id not in self.copies:
            return None
        return self._ref(self.head_id)

    async def download(self, ref: StoredRef) -> bytes:
        return self.copies[ref.message_id]

    async def create(self, content: bytes, caption: Optional[str] = None) -> StoredRef:
        self.create_calls += 1
        message_id = self._next_message_id
        self._next_message_id += 1
        self.copies[message_id] = content
        self.captions[message_id] = caption
        self._bump(message_id)
        self.head_id = message_id
        return self._ref(message_id)

    async def replace(self, ref: StoredRef, content: bytes, caption: Optional[str] = None) -> StoredRef:
        self.replace_calls += 1
        if self.gone_on_replace or ref.message_id not in self.copies:
            raise DocumentGoneError(f"Message {ref.message_id} is gone")
        if self.copies[ref.message_id] == content and self.captions.get(ref.message_id) == caption:
            return ref
        self.copies[ref.message_id] = content
        self.captions[ref.message_id] = caption
        self._bump(ref.message_id)
        return self._ref(ref.message_id)

    # ---- test helpers ----

    def seed(self, payload: Any) -> StoredRef:
        """Store raw content (dict -> JSON) as the pinned head."""
        if isinstance(payload, (bytes, str)):
            content = payload.encode("utf-8") if isinstance(payload, str) else payload
        else:
            content = json.dumps(payload).encode("utf-8")
        message_id = self._next_message_id
        self._next_message_id += 1
        self.copies[message_id] = content
        self._bump(message_id)
        self.head_id = message_id
        return self._ref(message_id)

    def external_write(self, document: PortfolioDocument):
        """Simulate another process editing the pinned copy."""
        self.copies[self.head_id] = json.dumps(document.to_payload()).encode("utf-8")
        self._bump(self.head_id)

    def delete_head(self):
        del self.copies[self.head_id]

    def pin_message(self, text: str):
        """Simulate someone pinning a plain text message over the document."""
        self.pinned_text = text

    def head_payload(self) -> Dict[str, Any]:
        return json.loads(self.copies[self.head_id])

    def head_document(self) -> PortfolioDocument:
        return PortfolioDocument.from_payload(self.head_payload())


class StaticPriceProvider(PriceProvider):
    """Provider answering from a fixed quote table"""

    def __init__(self, quotes: Optional[Dict[str, MarketQuote]] = None, name: str = "static", batch: int = 30):
        self.quotes = quotes or {}
        self.name = name
        self.max_batch_size = batch
        self.requests: List[List[str]] = []
        self.closed = False

    async def get_quote(self, token: TokenRef) -> Optional[MarketQuote]:
        self.requests.append([token.address])
        return self.quotes.get(token.address)

    async def get_quotes(self, tokens: List[TokenRef]) -> Dict[str, MarketQuote]:
        self.requests.append([t.address for t in tokens])
        return {t.address: self.quotes[t.address] for t in tokens if t.address in self.quotes}

    async def close(self):
        self.closed = True


class RecordingNotifier(NotificationSink):
    """Collects sent messages instead of delivering them"""

    def __init__(self):
        self.messages: List[str] = []
        self.forwarded: List[str] = []

    async def send(self, text: str) -> bool:
        self.messages.append(text)
        return True

    async def forward_signal(self, text: str) -> bool:
        self.forwarded.append(text)
        return True


async def no_sleep(seconds: float):
    return None


# ==================== FIXTURES ====================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def document() -> PortfolioDocument:
    return PortfolioDocument.new()


@pytest.fixture
def engine(document, clock) -> PositionEngine:
    return PositionEngine(document, clock=clock)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def gateway(store, clock) -> StateStoreGateway:
    return StateStoreGateway(store, file_name=FILE_NAME, clock=clock)


@pytest.fixture
def price_provider() -> StaticPriceProvider:
    return StaticPriceProvider()


@pytest.fixture
def oracle(price_provider) -> PriceOracle:
    return PriceOracle(price_provider, chunk_delay=0, sleep=no_sleep)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_store():
    """Factory for stores with non-default settings"""
    return InMemoryDocumentStore


@pytest.fixture
def make_provider():
    """Factory for quote-table price providers"""
    return StaticPriceProvider


@pytest.fixture
async def test_client(gateway, oracle, notifier) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client against the app, with the simulator service wired to the
    in-memory store, static prices and recording notifier.
    """
    service = SimulatorService(gateway, oracle, notifier, poll_iterations=1, poll_delay_seconds=0)

    async def override():
        yield service

    app.dependency_overrides[get_simulator_service] = override
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
