# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Transactional document storage for discussions and issues."""

from .document_store import (
    DocumentStore,
    DocumentStoreConnectionError,
    DocumentStoreError,
    DocumentStoreNotConnectedError,
    DocumentTransaction,
    TransactionConflictError,
    TransactionFailedError,
    TransactionScopeError,
    create_document_store,
)
from .inmemory_document_store import (
    MAX_CROSS_GROUP_DOCUMENTS,
    InMemoryDocumentStore,
    InMemoryTransaction,
)
from .mongo_document_store import MongoDocumentStore, MongoTransaction

__all__ = [
    # Document Stores
    "DocumentStore",
    "DocumentTransaction",
    "InMemoryDocumentStore",
    "InMemoryTransaction",
    "MAX_CROSS_GROUP_DOCUMENTS",
    "MongoDocumentStore",
    "MongoTransaction",
    "create_document_store",
    # Exceptions
    "DocumentStoreError",
    "DocumentStoreNotConnectedError",
    "DocumentStoreConnectionError",
    "TransactionConflictError",
    "TransactionScopeError",
    "TransactionFailedError",
]
