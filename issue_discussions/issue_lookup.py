# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Mapping of external issue ids to issue keys."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping

from .exceptions import IssueLookupError
from .storage import DocumentStore, DocumentStoreError

logger = logging.getLogger(__name__)


class IssueLookup(ABC):
    """Resolves the issue ids found in messages (reporting ids) to issue keys."""

    @abstractmethod
    def resolve(self, issue_id: str) -> str:
        """Return the key of the issue reported under ``issue_id``.

        Raises:
            IssueLookupError: If the id does not identify exactly one issue
        """
        pass

    def resolve_all(self, issue_ids: Iterable[str]) -> list[str]:
        """Resolve every id, stopping at the first failure.

        Raises:
            IssueLookupError: For the first id that fails to resolve
        """
        return [self.resolve(issue_id) for issue_id in issue_ids]


class DocumentIssueLookup(IssueLookup):
    """Looks issues up by the ``reporting_ids`` array of the issue documents."""

    def __init__(self, document_store: DocumentStore, collection: str = "issues"):
        self.document_store = document_store
        self.collection = collection

    def resolve(self, issue_id: str) -> str:
        try:
            docs = self.document_store.query_documents(
                self.collection, {"reporting_ids": issue_id}, limit=2
            )
        except DocumentStoreError as e:
            raise IssueLookupError(issue_id, str(e)) from e
        if not docs:
            raise IssueLookupError(issue_id, "no such issue")
        if len(docs) > 1:
            raise IssueLookupError(issue_id, "reporting id is shared by several issues")
        logger.debug("Resolved issue id %s to %s", issue_id, docs[0]["_id"])
        return docs[0]["_id"]


class StaticIssueLookup(IssueLookup):
    """Dictionary backed lookup, for tools and tests."""

    def __init__(self, mapping: Mapping[str, str]):
        self.mapping = dict(mapping)

    def resolve(self, issue_id: str) -> str:
        try:
            return self.mapping[issue_id]
        except KeyError:
            raise IssueLookupError(issue_id, "no such issue") from None
