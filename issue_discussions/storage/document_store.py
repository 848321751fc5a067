# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Abstract transactional document store interface."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import replace
from typing import Any, TypeVar

from ..retry_policy import DEFAULT_TRANSACTION_ATTEMPTS, RetryConfig, RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DocumentStoreError(Exception):
    """Base exception for document store errors."""
    pass


class DocumentStoreNotConnectedError(DocumentStoreError):
    """Exception raised when attempting operations on a disconnected store."""
    pass


class DocumentStoreConnectionError(DocumentStoreError):
    """Exception raised when connection to the document store fails."""
    pass


class TransactionConflictError(DocumentStoreError):
    """Exception raised when a transaction lost a race with a concurrent writer.

    The transaction had no effect and can be retried from scratch.
    """
    pass


class TransactionScopeError(DocumentStoreError):
    """Exception raised when a transaction touches more documents than allowed."""
    pass


class TransactionFailedError(DocumentStoreError):
    """Exception raised when a transaction kept conflicting until the last attempt."""

    def __init__(self, message: str, attempts: int, last_error: Exception | None = None):
        """Initialize TransactionFailedError.

        Args:
            message: Error message
            attempts: Number of attempts that were made
            last_error: Conflict that stopped the last attempt
        """
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class DocumentTransaction(ABC):
    """Reads and writes performed as one atomic unit.

    Writes become visible to others only on ``commit``. A transaction object is
    used for a single attempt; retries get a fresh one.
    """

    @abstractmethod
    def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Retrieve a document by its ID, or None if it does not exist."""
        pass

    @abstractmethod
    def put_document(self, collection: str, doc_id: str, doc: dict[str, Any]) -> None:
        """Create or replace the document stored under ``doc_id``."""
        pass

    @abstractmethod
    def query_documents(
        self, collection: str, filter_dict: dict[str, Any], limit: int | None = 100
    ) -> list[dict[str, Any]]:
        """Query committed documents matching the filter criteria."""
        pass

    @abstractmethod
    def commit(self) -> None:
        """Make the writes visible.

        Raises:
            TransactionConflictError: If a concurrent writer got there first
        """
        pass

    @abstractmethod
    def abort(self) -> None:
        """Discard the writes. Safe to call more than once and after commit."""
        pass


class DocumentStore(ABC):
    """Abstract base class for transactional document storage backends.

    Filters are dictionaries of equality conditions. Keys may be dotted paths
    that traverse embedded documents and arrays (``"messages.id"``), and an
    equality condition on an array field matches if any element is equal.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the document store.

        Raises:
            DocumentStoreConnectionError: If connection fails
        """
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the document store."""
        pass

    @abstractmethod
    def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Retrieve a document by its ID.

        Args:
            collection: Name of the collection/table
            doc_id: Document ID

        Returns:
            Document data as dictionary, or None if not found
        """
        pass

    @abstractmethod
    def put_document(self, collection: str, doc_id: str, doc: dict[str, Any]) -> None:
        """Create or replace a document.

        Args:
            collection: Name of the collection/table
            doc_id: Document ID
            doc: Document data as dictionary
        """
        pass

    @abstractmethod
    def query_documents(
        self, collection: str, filter_dict: dict[str, Any], limit: int | None = 100
    ) -> list[dict[str, Any]]:
        """Query documents matching the filter criteria.

        Args:
            collection: Name of the collection/table
            filter_dict: Filter criteria as dictionary
            limit: Maximum number of documents to return, None for no limit

        Returns:
            List of matching documents
        """
        pass

    @abstractmethod
    def begin_transaction(self, cross_group: bool = False) -> DocumentTransaction:
        """Start a transaction.

        Args:
            cross_group: Allow the transaction to span several unrelated documents.
                Backends that limit transaction scope use this flag to decide how
                many documents one transaction may touch.

        Returns:
            New transaction
        """
        pass

    def run_in_transaction(
        self,
        fn: Callable[[DocumentTransaction], T],
        attempts: int = DEFAULT_TRANSACTION_ATTEMPTS,
        cross_group: bool = False,
        retry_config: RetryConfig | None = None,
    ) -> T:
        """Run ``fn`` inside a transaction, retrying it on conflicts.

        ``fn`` is called again from scratch on every attempt, so it must derive
        everything it writes from what it reads through the transaction.

        Args:
            fn: Function receiving the transaction; its return value is returned
            attempts: Maximum number of attempts
            cross_group: Allow the transaction to span several unrelated documents
            retry_config: Backoff settings; its max_attempts is replaced by ``attempts``

        Returns:
            Whatever ``fn`` returned on the attempt that committed

        Raises:
            TransactionFailedError: If every attempt ended in a conflict
            Exception: Anything else raised by ``fn`` is re-raised immediately
        """
        config = replace(retry_config or RetryConfig(), max_attempts=attempts)
        policy = RetryPolicy(config)
        attempt = 1

        while True:
            policy.sleep(policy.calculate_delay_ms(attempt))
            txn = None
            try:
                txn = self.begin_transaction(cross_group=cross_group)
                result = fn(txn)
                txn.commit()
                return result
            except TransactionConflictError as e:
                if txn is not None:
                    txn.abort()
                if not policy.should_retry(attempt):
                    logger.warning("Transaction failed after %d attempts: %s", attempt, e)
                    raise TransactionFailedError(
                        f"transaction failed after {attempt} attempts: {e}",
                        attempts=attempt,
                        last_error=e,
                    ) from e
                logger.debug("Transaction conflict on attempt %d, retrying: %s", attempt, e)
                attempt += 1
            except Exception:
                if txn is not None:
                    txn.abort()
                raise


def create_document_store(
    store_type: str = None,
    **kwargs
) -> DocumentStore:
    """Factory function to create a document store.

    Args:
        store_type: Type of document store ("mongodb", "inmemory").
                   If None, reads from DOCUMENT_STORE_TYPE environment variable (defaults to "inmemory")
        **kwargs: Additional store-specific arguments. For MongoDB, parameters that are
                 not provided are read from the DOCUMENT_DATABASE_* environment variables.

    Returns:
        DocumentStore instance

    Raises:
        ValueError: If store_type is not recognized
    """
    import os

    if store_type is None:
        store_type = os.getenv("DOCUMENT_STORE_TYPE", "inmemory")

    if store_type == "mongodb":
        from .mongo_document_store import MongoDocumentStore

        # Explicit parameters take precedence over environment variables
        mongo_kwargs = dict(kwargs)
        mongo_kwargs.setdefault("host", os.getenv("DOCUMENT_DATABASE_HOST", "localhost"))
        mongo_kwargs.setdefault("port", int(os.getenv("DOCUMENT_DATABASE_PORT", "27017")))
        mongo_kwargs.setdefault("database", os.getenv("DOCUMENT_DATABASE_NAME", "discussions"))

        # Credentials only if set
        if "username" not in mongo_kwargs and os.getenv("DOCUMENT_DATABASE_USER") is not None:
            mongo_kwargs["username"] = os.getenv("DOCUMENT_DATABASE_USER")
        if "password" not in mongo_kwargs and os.getenv("DOCUMENT_DATABASE_PASSWORD") is not None:
            mongo_kwargs["password"] = os.getenv("DOCUMENT_DATABASE_PASSWORD")

        return MongoDocumentStore(**mongo_kwargs)
    elif store_type == "inmemory":
        from .inmemory_document_store import InMemoryDocumentStore
        return InMemoryDocumentStore()
    else:
        raise ValueError(f"Unknown store_type: {store_type}")
