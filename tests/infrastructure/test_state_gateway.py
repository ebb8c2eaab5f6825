"""
State Store Gateway Tests

Load classification, optimistic saves and the bounded retry loop, against
an in-memory document store.

Author: Alphalert Team
Last Updated: 2026-10-17
"""

import json

import pytest

from app.infrastructure.state_gateway import DocumentState, StateStoreGateway, classify_payload
from app.modules.positions.models import PortfolioDocument
from app.shared.exceptions import (
    ConcurrentModificationError,
    ConfirmationRequiredError,
    CorruptedDocumentError,
    ForeignDocumentError,
)


# ==================== CLASSIFICATION TESTS ====================

def test_classify_valid_document():
    content = json.dumps(PortfolioDocument.new().to_payload()).encode("utf-8")
    classification = classify_payload(content)

    assert classification.state == DocumentState.VALID
    assert classification.document is not None


@pytest.mark.parametrize("content,state", [
    (b"{not json", DocumentState.CORRUPTED),
    (b"\x80abc", DocumentState.CORRUPTED),
    (b"[1, 2, 3]", DocumentState.FOREIGN),
    (b'"just a string"', DocumentState.FOREIGN),
    (b'{"users": []}', DocumentState.FOREIGN),
    (b'{"positions": {}}', DocumentState.FOREIGN),
    (b'{"positions": {}, "stats": {}, "version": 99}', DocumentState.FOREIGN),
    (b'{"positions": {"x": {"entryPrice": -1, "size": 250}}, "stats": {}}', DocumentState.CORRUPTED),
    (b'{"positions": [], "stats": {}}', DocumentState.CORRUPTED),
])
def test_classify_rejects_bad_payloads(content, state):
    classification = classify_payload(content)
    assert classification.state == state
    assert classification.document is None
    assert classification.reason


# ==================== LOAD TESTS ====================

@pytest.mark.asyncio
async def test_load_initializes_missing_document(gateway, store):
    """Test first load creates and pins an empty document"""
    document = await gateway.load()

    assert document.positions == {}
    assert store.create_calls == 1
    assert gateway.ref.message_id == store.head_id
    assert store.head_payload()["stats"]["totalTrades"] == 0
    assert "Live Portfolio Status" in store.captions[store.head_id]


@pytest.mark.asyncio
async def test_load_existing_document(gateway, store):
    existing = PortfolioDocument.new()
    existing.stats = existing.stats.model_copy(update={"total_trades": 7})
    ref = store.seed(existing.to_payload())

    document = await gateway.load()

    assert document.stats.total_trades == 7
    assert gateway.ref == ref
    assert store.create_calls == 0


@pytest.mark.asyncio
async def test_load_refuses_foreign_document(gateway, store):
    """Test foreign content fails loudly and is left in place"""
    store.seed({"users": [{"name": "alice"}]})

    with pytest.raises(ForeignDocumentError):
        await gateway.load()

    assert store.head_payload() == {"users": [{"name": "alice"}]}
    assert store.create_calls == 0


@pytest.mark.asyncio
async def test_load_refuses_pinned_text_message(gateway, store):
    """Test a non-document pin is foreign, not an empty store"""
    store.pin_message("weekly update")

    with pytest.raises(ForeignDocumentError):
        await gateway.load()

    assert store.create_calls == 0
    assert store.replace_calls == 0


@pytest.mark.asyncio
async def test_save_refuses_when_text_pinned_over_document(gateway, store):
    """Test a save never re-creates the document over a foreign pin"""
    document = await gateway.load()
    store.pin_message("weekly update")

    with pytest.raises(ForeignDocumentError):
        await gateway.save(document)

    assert store.create_calls == 1
    assert store.replace_calls == 0


@pytest.mark.asyncio
async def test_load_refuses_other_file_name(make_store, clock):
    store = make_store(file_name="other-db.json")
    store.seed(PortfolioDocument.new().to_payload())
    gateway = StateStoreGateway(store, file_name="simulator-db.json", clock=clock)

    with pytest.raises(ForeignDocumentError):
        await gateway.load()


@pytest.mark.asyncio
async def test_load_refuses_corrupted_document(gateway, store):
    store.seed(b'{"positions": {"x"')

    with pytest.raises(CorruptedDocumentError):
        await gateway.load()

    assert store.create_calls == 0
    assert store.replace_calls == 0


# ==================== SAVE TESTS ====================

@pytest.mark.asyncio
async def test_save_replaces_in_place(gateway, store, clock):
    await gateway.load()
    first_ref = gateway.ref
    document = await gateway.load()
    document.stats = document.stats.model_copy(update={"total_trades": 1})
    clock.advance()

    ref = await gateway.save(document)

    assert ref.message_id == first_ref.message_id
    assert ref.revision != first_ref.revision
    assert store.head_payload()["stats"]["totalTrades"] == 1
    assert store.head_payload()["updated"] == clock.now


@pytest.mark.asyncio
async def test_save_detects_concurrent_write(gateway, store):
    """Test a revision change between load and save is a conflict"""
    document = await gateway.load()

    other = PortfolioDocument.new()
    other.stats = other.stats.model_copy(update={"total_trades": 42})
    store.external_write(other)

    with pytest.raises(ConcurrentModificationError):
        await gateway.save(document)

    assert store.head_payload()["stats"]["totalTrades"] == 42


@pytest.mark.asyncio
async def test_save_recreates_deleted_document(gateway, store):
    """Test a vanished pinned copy is re-created instead of losing data"""
    document = await gateway.load()
    old_id = store.head_id
    store.delete_head()

    ref = await gateway.save(document)

    assert ref.message_id != old_id
    assert store.head_id == ref.message_id
    assert store.create_calls == 2


@pytest.mark.asyncio
async def test_save_recreates_when_replace_reports_gone(gateway, store):
    document = await gateway.load()
    store.gone_on_replace = True

    ref = await gateway.save(document)

    assert store.replace_calls == 1
    assert store.head_id == ref.message_id
    assert gateway.ref == ref


# ==================== MUTATE TESTS ====================

@pytest.mark.asyncio
async def test_mutate_saves_dirty_engine(gateway, store):
    result = await gateway.mutate(lambda engine: engine.open_position("So1A", entry_price=1.0))

    assert result.saved is True
    assert result.attempts == 1
    assert result.value.opened is True
    assert "So1A" in store.head_payload()["positions"]


@pytest.mark.asyncio
async def test_mutate_skips_save_when_clean(gateway, store):
    await gateway.load()
    replaces = store.replace_calls

    result = await gateway.mutate(lambda engine: engine.get_stats())

    assert result.saved is False
    assert store.replace_calls == replaces


@pytest.mark.asyncio
async def test_mutate_retries_on_fresh_state(gateway, store):
    """Test a conflicting writer's change is kept and the update re-applied"""
    await gateway.load()
    calls = []

    def apply(engine):
        calls.append(len(engine.document.positions))
        if len(calls) == 1:
            # Another process opens a position while we work
            other = engine.document.model_copy(deep=True)
            other_engine = gateway.new_engine(other)
            other_engine.open_position("So1Other", entry_price=2.0)
            store.external_write(other)
        return engine.open_position("So1Mine", entry_price=1.0)

    result = await gateway.mutate(apply)

    assert result.attempts == 2
    assert calls == [0, 1]
    saved = store.head_document()
    assert set(saved.positions) == {"So1Other", "So1Mine"}
    assert saved.stats.total_trades == 2


@pytest.mark.asyncio
async def test_mutate_gives_up_after_max_attempts(gateway, store):
    await gateway.load()

    def always_conflict(engine):
        store.external_write(engine.document.model_copy(deep=True))
        return engine.open_position("So1Mine", entry_price=1.0)

    with pytest.raises(ConcurrentModificationError):
        await gateway.mutate(always_conflict, max_attempts=2)

    assert "So1Mine" not in store.head_payload()["positions"]


# ==================== RESET TESTS ====================

@pytest.mark.asyncio
async def test_reset_requires_confirmation(gateway, store):
    await gateway.mutate(lambda engine: engine.open_position("So1A", entry_price=1.0))

    with pytest.raises(ConfirmationRequiredError):
        await gateway.reset("yes")
    with pytest.raises(ConfirmationRequiredError):
        await gateway.reset(None)

    assert "So1A" in store.head_payload()["positions"]


@pytest.mark.asyncio
async def test_reset_writes_new_copy_and_keeps_backup(gateway, store):
    await gateway.mutate(lambda engine: engine.open_position("So1A", entry_price=1.0))
    old_id = store.head_id

    document = await gateway.reset("RESET")

    assert document.positions == {}
    assert store.head_id != old_id
    assert store.head_payload()["positions"] == {}
    assert "So1A" in json.loads(store.copies[old_id])["positions"]
