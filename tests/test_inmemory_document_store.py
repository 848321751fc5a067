# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Tests for the in-memory document store and its transactions."""

import pytest

from issue_discussions.retry_policy import RetryConfig
from issue_discussions.storage import (
    MAX_CROSS_GROUP_DOCUMENTS,
    DocumentStore,
    DocumentStoreNotConnectedError,
    InMemoryDocumentStore,
    TransactionConflictError,
    TransactionFailedError,
    TransactionScopeError,
    create_document_store,
)
from issue_discussions.storage.inmemory_document_store import matches_filter

NO_DELAY = RetryConfig(base_delay_ms=0, max_delay_ms=0)


@pytest.fixture
def store():
    store = InMemoryDocumentStore()
    store.connect()
    return store


class TestFactory:
    """Tests for create_document_store."""

    def test_create_inmemory_store(self):
        store = create_document_store(store_type="inmemory")

        assert isinstance(store, InMemoryDocumentStore)
        assert isinstance(store, DocumentStore)

    def test_default_from_environment(self, monkeypatch):
        monkeypatch.delenv("DOCUMENT_STORE_TYPE", raising=False)

        assert isinstance(create_document_store(), InMemoryDocumentStore)

    def test_create_unknown_store_type(self):
        with pytest.raises(ValueError, match="Unknown store_type"):
            create_document_store(store_type="invalid")


class TestInMemoryDocumentStore:
    """Tests for plain reads and writes."""

    def test_connect_and_disconnect(self):
        store = InMemoryDocumentStore()

        store.connect()
        assert store.connected is True

        store.disconnect()
        assert store.connected is False

    def test_requires_connection(self):
        store = InMemoryDocumentStore()

        with pytest.raises(DocumentStoreNotConnectedError):
            store.get_document("issues", "issue-1")

    def test_put_and_get(self, store):
        store.put_document("issues", "issue-1", {"title": "bug"})

        assert store.get_document("issues", "issue-1") == {"_id": "issue-1", "title": "bug"}

    def test_get_missing(self, store):
        assert store.get_document("issues", "nope") is None

    def test_put_replaces(self, store):
        store.put_document("issues", "issue-1", {"title": "bug", "status": "open"})
        store.put_document("issues", "issue-1", {"title": "bug"})

        assert "status" not in store.get_document("issues", "issue-1")

    def test_documents_are_copied(self, store):
        """Test that neither the stored nor the returned document is shared."""
        doc = {"tags": ["a"]}
        store.put_document("issues", "issue-1", doc)
        doc["tags"].append("b")

        fetched = store.get_document("issues", "issue-1")
        fetched["tags"].append("c")

        assert store.get_document("issues", "issue-1")["tags"] == ["a"]

    def test_query_equality(self, store):
        store.put_document("discussions", "1", {"source": "lore"})
        store.put_document("discussions", "2", {"source": "other"})

        assert [d["_id"] for d in store.query_documents("discussions", {"source": "lore"})] == ["1"]

    def test_query_array_membership(self, store):
        store.put_document("discussions", "1", {"issue_keys": ["a", "b"]})
        store.put_document("discussions", "2", {"issue_keys": ["c"]})

        assert [d["_id"] for d in store.query_documents("discussions", {"issue_keys": "b"})] == ["1"]

    def test_query_dotted_path_through_array(self, store):
        store.put_document("discussions", "1", {"source": "lore", "messages": [{"id": "m1"}, {"id": "m2"}]})
        store.put_document("discussions", "2", {"source": "lore", "messages": [{"id": "m3"}]})

        found = store.query_documents("discussions", {"source": "lore", "messages.id": "m2"})

        assert [d["_id"] for d in found] == ["1"]

    def test_query_limit(self, store):
        for i in range(5):
            store.put_document("issues", str(i), {"kind": "bug"})

        assert len(store.query_documents("issues", {"kind": "bug"}, limit=2)) == 2

    def test_query_without_limit(self, store):
        for i in range(150):
            store.put_document("issues", str(i), {"kind": "bug"})

        assert len(store.query_documents("issues", {"kind": "bug"}, limit=None)) == 150

    def test_matches_filter_missing_field(self):
        assert not matches_filter({"a": 1}, {"b.c": 1})
        assert matches_filter({"a": 1}, {})


class TestInMemoryTransactions:
    """Tests for optimistic transactions."""

    def test_commit_makes_writes_visible(self, store):
        txn = store.begin_transaction()
        txn.put_document("issues", "issue-1", {"title": "bug"})

        assert store.get_document("issues", "issue-1") is None
        txn.commit()
        assert store.get_document("issues", "issue-1")["title"] == "bug"

    def test_reads_own_writes(self, store):
        txn = store.begin_transaction()
        txn.put_document("issues", "issue-1", {"title": "bug"})

        assert txn.get_document("issues", "issue-1")["title"] == "bug"

    def test_abort_discards_writes(self, store):
        txn = store.begin_transaction()
        txn.put_document("issues", "issue-1", {"title": "bug"})
        txn.abort()

        assert store.get_document("issues", "issue-1") is None

    def test_conflicting_write(self, store):
        """Test that a document changed after it was read makes commit fail."""
        store.put_document("issues", "issue-1", {"count": 1})
        txn = store.begin_transaction()
        doc = txn.get_document("issues", "issue-1")

        store.put_document("issues", "issue-1", {"count": 5})
        txn.put_document("issues", "issue-1", dict(doc, count=doc["count"] + 1))

        with pytest.raises(TransactionConflictError):
            txn.commit()
        assert store.get_document("issues", "issue-1")["count"] == 5

    def test_conflicting_create(self, store):
        """Test that two transactions creating the same document conflict."""
        first = store.begin_transaction()
        second = store.begin_transaction()
        assert first.get_document("issues", "new") is None
        assert second.get_document("issues", "new") is None
        first.put_document("issues", "new", {"by": "first"})
        second.put_document("issues", "new", {"by": "second"})

        first.commit()
        with pytest.raises(TransactionConflictError):
            second.commit()
        assert store.get_document("issues", "new")["by"] == "first"

    def test_single_document_scope(self, store):
        """Test that plain transactions may only touch one document."""
        txn = store.begin_transaction()
        txn.get_document("issues", "issue-1")

        with pytest.raises(TransactionScopeError):
            txn.get_document("issues", "issue-2")

    def test_cross_group_scope(self, store):
        txn = store.begin_transaction(cross_group=True)
        for i in range(MAX_CROSS_GROUP_DOCUMENTS):
            txn.get_document("issues", str(i))

        with pytest.raises(TransactionScopeError):
            txn.get_document("issues", "one-too-many")

    def test_finished_transaction_cannot_be_used(self, store):
        txn = store.begin_transaction()
        txn.commit()

        with pytest.raises(RuntimeError):
            txn.get_document("issues", "issue-1")


class TestRunInTransaction:
    """Tests for the retry loop of run_in_transaction."""

    def test_returns_result(self, store):
        def create(txn):
            txn.put_document("issues", "issue-1", {"title": "bug"})
            return "done"

        assert store.run_in_transaction(create) == "done"
        assert store.get_document("issues", "issue-1")["title"] == "bug"

    def test_retries_after_conflict(self, store):
        """Test that a conflicting attempt is re-run against fresh data."""
        store.put_document("issues", "issue-1", {"count": 0})
        calls = []

        def increment(txn):
            doc = txn.get_document("issues", "issue-1")
            calls.append(doc["count"])
            if len(calls) == 1:
                # A concurrent writer sneaks in between read and commit.
                store.put_document("issues", "issue-1", {"count": 10})
            txn.put_document("issues", "issue-1", dict(doc, count=doc["count"] + 1))

        store.run_in_transaction(increment, retry_config=NO_DELAY)

        assert calls == [0, 10]
        assert store.get_document("issues", "issue-1")["count"] == 11

    def test_gives_up_after_attempts(self, store):
        attempts = []

        def always_conflicts(txn):
            attempts.append(1)
            raise TransactionConflictError("busy")

        with pytest.raises(TransactionFailedError) as exc_info:
            store.run_in_transaction(always_conflicts, attempts=4, retry_config=NO_DELAY)

        assert len(attempts) == 4
        assert exc_info.value.attempts == 4
        assert isinstance(exc_info.value.last_error, TransactionConflictError)

    def test_other_errors_are_not_retried(self, store):
        attempts = []

        def fails(txn):
            attempts.append(1)
            txn.put_document("issues", "issue-1", {"title": "bug"})
            raise KeyError("boom")

        with pytest.raises(KeyError):
            store.run_in_transaction(fails, retry_config=NO_DELAY)

        assert len(attempts) == 1
        assert store.get_document("issues", "issue-1") is None

    def test_scope_errors_are_not_retried(self, store):
        def too_wide(txn):
            txn.get_document("issues", "a")
            txn.get_document("issues", "b")

        with pytest.raises(TransactionScopeError):
            store.run_in_transaction(too_wide, retry_config=NO_DELAY)
