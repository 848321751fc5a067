# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""MongoDB document store implementation."""

import logging
from typing import Any

from pymongo import MongoClient
from pymongo.errors import ConnectionFailure, OperationFailure, PyMongoError

from .document_store import (
    DocumentStore,
    DocumentStoreConnectionError,
    DocumentStoreError,
    DocumentStoreNotConnectedError,
    DocumentTransaction,
    TransactionConflictError,
)

logger = logging.getLogger(__name__)

# Server error code for a write that collided with another transaction.
WRITE_CONFLICT_CODE = 112

# Attempts at committing when the server could not confirm the outcome.
MAX_COMMIT_ATTEMPTS = 3


def _is_conflict(error: PyMongoError) -> bool:
    if error.has_error_label("TransientTransactionError"):
        return True
    return isinstance(error, OperationFailure) and error.code == WRITE_CONFLICT_CODE


class MongoTransaction(DocumentTransaction):
    """Multi-document MongoDB transaction bound to one client session."""

    def __init__(self, database, session):
        self._database = database
        self._session = session
        try:
            self._session.start_transaction()
        except PyMongoError as e:
            self._session.end_session()
            raise self._translate(e, "start transaction") from e

    def _translate(self, error: PyMongoError, operation: str) -> DocumentStoreError:
        if _is_conflict(error):
            return TransactionConflictError(f"{operation} conflicted: {error}")
        return DocumentStoreError(f"{operation} failed: {error}")

    def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        try:
            return self._database[collection].find_one({"_id": doc_id}, session=self._session)
        except PyMongoError as e:
            raise self._translate(e, f"get {collection}/{doc_id}") from e

    def put_document(self, collection: str, doc_id: str, doc: dict[str, Any]) -> None:
        doc = dict(doc, _id=doc_id)
        try:
            self._database[collection].replace_one(
                {"_id": doc_id}, doc, upsert=True, session=self._session
            )
        except PyMongoError as e:
            raise self._translate(e, f"put {collection}/{doc_id}") from e

    def query_documents(
        self, collection: str, filter_dict: dict[str, Any], limit: int | None = 100
    ) -> list[dict[str, Any]]:
        try:
            cursor = self._database[collection].find(filter_dict, session=self._session)
            if limit is not None:
                cursor = cursor.limit(limit)
            return list(cursor)
        except PyMongoError as e:
            raise self._translate(e, f"query {collection}") from e

    def commit(self) -> None:
        for attempt in range(1, MAX_COMMIT_ATTEMPTS + 1):
            try:
                self._session.commit_transaction()
                break
            except PyMongoError as e:
                if e.has_error_label("UnknownTransactionCommitResult") and attempt < MAX_COMMIT_ATTEMPTS:
                    logger.debug("MongoDocumentStore: commit result unknown, retrying commit")
                    continue
                raise self._translate(e, "commit") from e
        self._session.end_session()

    def abort(self) -> None:
        try:
            if self._session.in_transaction:
                self._session.abort_transaction()
        except PyMongoError as e:
            logger.warning("MongoDocumentStore: abort failed - %s", e)
        finally:
            self._session.end_session()


class MongoDocumentStore(DocumentStore):
    """MongoDB document store implementation.

    Transactions need a replica set or a sharded cluster. MongoDB does not
    restrict how many documents a transaction touches, so ``cross_group`` is
    accepted and ignored.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        database: str | None = None,
        discussions_collection: str = "discussions",
        issues_collection: str = "issues",
        **kwargs
    ):
        """Initialize MongoDB document store.

        Args:
            host: MongoDB host (required)
            port: MongoDB port (required)
            username: MongoDB username (optional)
            password: MongoDB password (optional)
            database: Database name (required)
            discussions_collection: Collection holding discussions, indexed on connect
            issues_collection: Collection holding issues, indexed on connect
            **kwargs: Additional MongoDB client options

        Raises:
            ValueError: If required parameters (host, port, database) are not provided
        """
        if not host:
            raise ValueError(
                "MongoDB host is required. "
                "Provide the MongoDB server hostname or IP address."
            )
        if port is None:
            raise ValueError(
                "MongoDB port is required. "
                "Provide the MongoDB server port number."
            )
        if not database:
            raise ValueError(
                "MongoDB database is required. "
                "Provide the database name to use."
            )

        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.database_name = database
        self.discussions_collection = discussions_collection
        self.issues_collection = issues_collection
        self.client_options = kwargs
        self.client = None
        self.database = None

    def connect(self) -> None:
        """Connect to MongoDB.

        Raises:
            DocumentStoreConnectionError: If connection fails
        """
        try:
            connection_params = {
                "host": self.host,
                "port": self.port,
                # Timestamps come back as aware UTC datetimes
                "tz_aware": True,
            }

            if self.username and self.password:
                connection_params["username"] = self.username
                connection_params["password"] = self.password
                if "authSource" not in self.client_options:
                    connection_params["authSource"] = "admin"

            connection_params.update(self.client_options)

            self.client = MongoClient(**connection_params)
            self.client.admin.command('ping')
            self.database = self.client[self.database_name]
            self._ensure_indexes()

            logger.info("MongoDocumentStore: connected to %s:%s/%s", self.host, self.port, self.database_name)

        except ConnectionFailure as e:
            logger.error("MongoDocumentStore: connection failed - %s", e, exc_info=True)
            raise DocumentStoreConnectionError(f"Failed to connect to MongoDB at {self.host}:{self.port}") from e
        except PyMongoError as e:
            logger.error("MongoDocumentStore: unexpected error during connect - %s", e, exc_info=True)
            raise DocumentStoreConnectionError(f"Unexpected error connecting to MongoDB: {str(e)}") from e

    def _ensure_indexes(self) -> None:
        """Create the indexes backing the discussion and issue queries."""
        discussions = self.database[self.discussions_collection]
        discussions.create_index([("source", 1), ("messages.id", 1)])
        discussions.create_index("issue_keys")
        self.database[self.issues_collection].create_index("reporting_ids")

    def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            self.client = None
            self.database = None
            logger.info("MongoDocumentStore: disconnected")

    def _ensure_connected(self) -> None:
        if self.database is None:
            raise DocumentStoreNotConnectedError("Not connected to MongoDB")

    def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Retrieve a document by its ID.

        Raises:
            DocumentStoreNotConnectedError: If not connected to MongoDB
            DocumentStoreError: If query operation fails
        """
        self._ensure_connected()
        try:
            doc = self.database[collection].find_one({"_id": doc_id})
        except PyMongoError as e:
            logger.error(f"MongoDocumentStore: get_document failed - {e}")
            raise DocumentStoreError(f"Failed to get document {doc_id} from {collection}") from e
        if doc is None:
            logger.debug(f"MongoDocumentStore: document {doc_id} not found in {collection}")
        return doc

    def put_document(self, collection: str, doc_id: str, doc: dict[str, Any]) -> None:
        """Create or replace a document.

        Raises:
            DocumentStoreNotConnectedError: If not connected to MongoDB
            DocumentStoreError: If the write fails
        """
        self._ensure_connected()
        try:
            self.database[collection].replace_one({"_id": doc_id}, dict(doc, _id=doc_id), upsert=True)
            logger.debug(f"MongoDocumentStore: stored document {doc_id} in {collection}")
        except PyMongoError as e:
            logger.error(f"MongoDocumentStore: put_document failed - {e}")
            raise DocumentStoreError(f"Failed to store document {doc_id} in {collection}") from e

    def query_documents(
        self, collection: str, filter_dict: dict[str, Any], limit: int | None = 100
    ) -> list[dict[str, Any]]:
        """Query documents matching the filter criteria.

        Raises:
            DocumentStoreNotConnectedError: If not connected to MongoDB
            DocumentStoreError: If query operation fails
        """
        self._ensure_connected()
        try:
            cursor = self.database[collection].find(filter_dict)
            if limit is not None:
                cursor = cursor.limit(limit)
            results = list(cursor)
        except PyMongoError as e:
            logger.error(f"MongoDocumentStore: query_documents failed - {e}")
            raise DocumentStoreError(f"Failed to query {collection}") from e
        logger.debug(
            f"MongoDocumentStore: query on {collection} with {filter_dict} "
            f"returned {len(results)} documents"
        )
        return results

    def begin_transaction(self, cross_group: bool = False) -> MongoTransaction:
        """Start a multi-document transaction in a new session."""
        self._ensure_connected()
        try:
            session = self.client.start_session()
        except PyMongoError as e:
            logger.error(f"MongoDocumentStore: start_session failed - {e}")
            raise DocumentStoreError("Failed to start a session") from e
        return MongoTransaction(self.database, session)
