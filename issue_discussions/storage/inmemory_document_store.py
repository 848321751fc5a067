# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""In-memory document store for testing and local development."""

import copy
import logging
import threading
from collections import defaultdict
from typing import Any

from .document_store import (
    DocumentStore,
    DocumentStoreNotConnectedError,
    DocumentTransaction,
    TransactionConflictError,
    TransactionScopeError,
)

logger = logging.getLogger(__name__)

# Documents a cross-group transaction may touch. Plain transactions may touch one.
MAX_CROSS_GROUP_DOCUMENTS = 25

DocumentRef = tuple[str, str]


def _field_values(value: Any, parts: list[str]) -> list[Any]:
    """Collect the values found under a dotted path, descending into arrays."""
    if not parts:
        if isinstance(value, list):
            return [value, *value]
        return [value]
    if isinstance(value, list):
        found = []
        for item in value:
            found.extend(_field_values(item, parts))
        return found
    if isinstance(value, dict) and parts[0] in value:
        return _field_values(value[parts[0]], parts[1:])
    return []


def matches_filter(doc: dict[str, Any], filter_dict: dict[str, Any]) -> bool:
    """Check a document against equality conditions.

    Args:
        doc: Document to check
        filter_dict: Mapping of (possibly dotted) field path to expected value

    Returns:
        True if every condition holds
    """
    return all(
        value in _field_values(doc, key.split("."))
        for key, value in filter_dict.items()
    )


class InMemoryTransaction(DocumentTransaction):
    """Optimistic transaction over an InMemoryDocumentStore.

    Remembers the version of every document it reads and buffers its writes.
    Commit fails if any of those documents changed in the meantime.
    """

    def __init__(self, store: "InMemoryDocumentStore", cross_group: bool = False):
        self._store = store
        self._max_documents = MAX_CROSS_GROUP_DOCUMENTS if cross_group else 1
        self._versions: dict[DocumentRef, int] = {}
        self._writes: dict[DocumentRef, dict[str, Any]] = {}
        self._finished = False

    def _track(self, ref: DocumentRef, version: int) -> None:
        if ref in self._versions:
            return
        if len(self._versions) >= self._max_documents:
            raise TransactionScopeError(
                f"transaction may touch at most {self._max_documents} document(s), "
                f"attempted to add {ref[0]}/{ref[1]}"
            )
        self._versions[ref] = version

    def _check_active(self) -> None:
        if self._finished:
            raise RuntimeError("transaction already finished")

    def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        self._check_active()
        ref = (collection, doc_id)
        if ref in self._writes:
            return copy.deepcopy(self._writes[ref])
        version, doc = self._store._read(collection, doc_id)
        self._track(ref, version)
        return doc

    def put_document(self, collection: str, doc_id: str, doc: dict[str, Any]) -> None:
        self._check_active()
        ref = (collection, doc_id)
        if ref not in self._versions:
            version, _ = self._store._read(collection, doc_id)
            self._track(ref, version)
        doc_copy = copy.deepcopy(doc)
        doc_copy["_id"] = doc_id
        self._writes[ref] = doc_copy

    def query_documents(
        self, collection: str, filter_dict: dict[str, Any], limit: int | None = 100
    ) -> list[dict[str, Any]]:
        self._check_active()
        results = []
        for doc_id, version, doc in self._store._scan(collection, filter_dict, limit):
            self._track((collection, doc_id), version)
            results.append(doc)
        return results

    def commit(self) -> None:
        self._check_active()
        self._finished = True
        self._store._commit(self._versions, self._writes)

    def abort(self) -> None:
        self._finished = True
        self._writes.clear()


class InMemoryDocumentStore(DocumentStore):
    """In-memory document store implementation for testing.

    Thread-safe. Every document carries a version number that is bumped on
    each write; transactions use it to detect concurrent modification.
    """

    def __init__(self):
        """Initialize in-memory document store."""
        self.collections: dict[str, dict[str, tuple[int, dict[str, Any]]]] = defaultdict(dict)
        self.connected = False
        self._lock = threading.RLock()

    def connect(self) -> None:
        """Pretend to connect.

        Note: Always succeeds for in-memory store
        """
        self.connected = True
        logger.debug("InMemoryDocumentStore: connected")

    def disconnect(self) -> None:
        """Pretend to disconnect."""
        self.connected = False
        logger.debug("InMemoryDocumentStore: disconnected")

    def _ensure_connected(self) -> None:
        if not self.connected:
            raise DocumentStoreNotConnectedError("InMemoryDocumentStore is not connected")

    def _read(self, collection: str, doc_id: str) -> tuple[int, dict[str, Any] | None]:
        """Return (version, copy of document); version 0 means the document is absent."""
        self._ensure_connected()
        with self._lock:
            entry = self.collections[collection].get(doc_id)
            if entry is None:
                return 0, None
            version, doc = entry
            return version, copy.deepcopy(doc)

    def _scan(self, collection: str, filter_dict: dict[str, Any], limit: int | None):
        self._ensure_connected()
        with self._lock:
            found = []
            for doc_id, (version, doc) in self.collections[collection].items():
                if matches_filter(doc, filter_dict):
                    found.append((doc_id, version, copy.deepcopy(doc)))
                    if limit is not None and len(found) >= limit:
                        break
        logger.debug(
            f"InMemoryDocumentStore: query on {collection} with {filter_dict} "
            f"returned {len(found)} documents"
        )
        return found

    def _write(self, collection: str, doc_id: str, doc: dict[str, Any]) -> None:
        version, _ = self.collections[collection].get(doc_id, (0, None))
        self.collections[collection][doc_id] = (version + 1, doc)

    def _commit(
        self,
        versions: dict[DocumentRef, int],
        writes: dict[DocumentRef, dict[str, Any]],
    ) -> None:
        """Apply buffered writes if nothing the transaction touched has changed.

        Raises:
            TransactionConflictError: If a touched document was modified concurrently
        """
        self._ensure_connected()
        with self._lock:
            for (collection, doc_id), version in versions.items():
                current, _ = self.collections[collection].get(doc_id, (0, None))
                if current != version:
                    raise TransactionConflictError(
                        f"document {doc_id} in {collection} was modified concurrently"
                    )
            for (collection, doc_id), doc in writes.items():
                self._write(collection, doc_id, doc)
        if writes:
            logger.debug(f"InMemoryDocumentStore: committed {len(writes)} document(s)")

    def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Retrieve a document by its ID.

        Args:
            collection: Name of the collection
            doc_id: Document ID

        Returns:
            Document data as dictionary, or None if not found
        """
        _, doc = self._read(collection, doc_id)
        return doc

    def put_document(self, collection: str, doc_id: str, doc: dict[str, Any]) -> None:
        """Create or replace a document.

        Args:
            collection: Name of the collection
            doc_id: Document ID
            doc: Document data as dictionary
        """
        self._ensure_connected()
        # Deep copy so that later mutations by the caller do not leak into the store
        doc_copy = copy.deepcopy(doc)
        doc_copy["_id"] = doc_id
        with self._lock:
            self._write(collection, doc_id, doc_copy)
        logger.debug(f"InMemoryDocumentStore: stored document {doc_id} in {collection}")

    def query_documents(
        self, collection: str, filter_dict: dict[str, Any], limit: int | None = 100
    ) -> list[dict[str, Any]]:
        """Query documents matching the filter criteria.

        Args:
            collection: Name of the collection
            filter_dict: Equality conditions; dotted paths descend into arrays
            limit: Maximum number of documents to return, None for no limit

        Returns:
            List of matching documents
        """
        return [doc for _, _, doc in self._scan(collection, filter_dict, limit)]

    def begin_transaction(self, cross_group: bool = False) -> InMemoryTransaction:
        """Start an optimistic transaction."""
        self._ensure_connected()
        return InMemoryTransaction(self, cross_group=cross_group)

    def clear_all(self) -> None:
        """Clear all collections (useful for testing)."""
        with self._lock:
            self.collections.clear()
        logger.debug("InMemoryDocumentStore: cleared all collections")
