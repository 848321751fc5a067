# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Merging new messages into discussions and into issue statistics."""

import time
from enum import Enum

from .config import DiscussionConfig
from .exceptions import DiscussionError, IssueLookupError, NoMessagesError, PropagationError
from .history import add_messages
from .issue_lookup import IssueLookup
from .logger import Logger, create_logger
from .metrics import MetricsCollector
from .models import (
    Discussion,
    DiscussionType,
    DiscussionUpdate,
    MergeResult,
    NewDiscussionMessage,
    Summary,
    discussion_key,
)
from .propagator import merge_issue_summary
from .resolver import build_update, discussions_for_issue
from .storage import DocumentStore, DocumentStoreError, DocumentTransaction, TransactionFailedError
from .summary import merge_summaries, promote_patch_activity


def _type_value(discussion_type) -> str:
    if isinstance(discussion_type, Enum):
        return discussion_type.value
    return discussion_type


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


class DiscussionMerger:
    """Folds received messages into discussions and per-issue statistics.

    A merge runs in two phases. The discussion is updated in one transaction,
    then the resulting diff is merged into every referenced issue, each in its
    own transaction. The phases are not atomic together: the discussion is the
    source of truth and issue statistics may briefly lag behind it. Diffs only
    contain newly accepted messages, so re-delivering a message never
    double-counts it.
    """

    def __init__(
        self,
        document_store: DocumentStore,
        issue_lookup: IssueLookup,
        config: DiscussionConfig | None = None,
        logger: Logger | None = None,
        metrics_collector: MetricsCollector | None = None,
    ):
        """Initialize the merger.

        Args:
            document_store: Store holding discussions and issues
            issue_lookup: Resolves external issue ids to issue keys
            config: Settings (defaults to DiscussionConfig())
            logger: Logger (defaults to create_logger())
            metrics_collector: Metrics collector (optional)
        """
        self.document_store = document_store
        self.issue_lookup = issue_lookup
        self.config = config or DiscussionConfig()
        self.logger = logger or create_logger(name="issue_discussions")
        self.metrics_collector = metrics_collector

    def save_message(self, message: NewDiscussionMessage) -> MergeResult:
        """Record a received message that references issues.

        Raises:
            AmbiguousThreadError: If the replied-to message is in several discussions
            See merge_discussion for the other errors.
        """
        update = build_update(self.document_store, message, self.config.discussions_collection)
        return self.merge_discussion(update)

    def merge_discussion(self, update: DiscussionUpdate) -> MergeResult:
        """Create or update a discussion and propagate the change to its issues.

        Args:
            update: Discussion identity, referenced issues and new messages

        Returns:
            MergeResult with the stored discussion and the diff of this call

        Raises:
            NoMessagesError: If the update carries no messages
            ValueError: If the update has no discussion id
            IssueLookupError: If a referenced issue is unknown; nothing is written
            TransactionFailedError: If the discussion transaction kept conflicting;
                nothing is written
            PropagationError: If some issues could not be updated; the discussion
                and the other issues are already updated
        """
        if not update.messages:
            raise NoMessagesError(update.id)
        if not update.id:
            raise ValueError("discussion id is required")

        start_time = time.monotonic()
        try:
            return self._merge(update)
        finally:
            if self.metrics_collector:
                self.metrics_collector.observe(
                    "discussion_merge_duration_seconds", time.monotonic() - start_time
                )

    def _merge(self, update: DiscussionUpdate) -> MergeResult:
        message_ids = [message.id for message in update.messages]

        try:
            issue_keys = self.issue_lookup.resolve_all(update.issue_ids)
        except IssueLookupError as e:
            self.logger.error(
                f"Discussion update rejected: {e}",
                discussion_id=update.id,
                issue_id=e.issue_id,
                message_ids=message_ids,
            )
            self._count_failure("issue_lookup")
            raise

        def update_discussion(txn: DocumentTransaction) -> tuple[Discussion, Summary]:
            collection = self.config.discussions_collection
            doc = txn.get_document(collection, discussion_key(update.source, update.id))
            if doc is None:
                discussion = Discussion(
                    source=update.source,
                    id=update.id,
                    type=_type_value(update.type),
                    subject=update.subject,
                )
            else:
                discussion = Discussion.from_document(doc)

            discussion.issue_keys = _unique(discussion.issue_keys + issue_keys)
            discussion.messages, diff = add_messages(
                discussion.messages, update.messages, self.config.max_messages_in_discussion
            )
            if discussion.type == DiscussionType.PATCH:
                diff = promote_patch_activity(diff)
            discussion.summary = merge_summaries(discussion.summary, diff)
            txn.put_document(collection, discussion.key, discussion.to_document())
            return discussion, diff

        try:
            # New discussions may get associated with several issues at once.
            discussion, diff = self.document_store.run_in_transaction(
                update_discussion,
                attempts=self.config.discussion_tx_attempts,
                cross_group=True,
                retry_config=self.config.retry_config,
            )
        except TransactionFailedError as e:
            self.logger.error(
                f"Failed to update discussion {update.id}: {e}",
                discussion_id=update.id,
                source=update.source,
                attempts=e.attempts,
                message_ids=message_ids,
            )
            self._count_failure("discussion_transaction")
            raise

        if self.metrics_collector:
            tags = {"source": discussion.source}
            self.metrics_collector.increment("discussion_merges_total", tags=tags)
            self.metrics_collector.increment(
                "discussion_messages_accepted_total", diff.all_messages, tags=tags
            )

        if diff.is_empty():
            self.logger.debug(
                f"No new messages for discussion {discussion.id}",
                discussion_id=discussion.id,
                message_ids=message_ids,
            )
            return MergeResult(discussion=discussion, diff=diff)

        updated = self.propagate(discussion, diff, message_ids)

        self.logger.info(
            f"Merged {diff.all_messages} message(s) into discussion {discussion.id}",
            discussion_id=discussion.id,
            source=discussion.source,
            issue_keys=updated,
        )
        return MergeResult(discussion=discussion, diff=diff, issue_keys=updated)

    def propagate(
        self,
        discussion: Discussion,
        diff: Summary,
        message_ids: list[str] | None = None,
    ) -> list[str]:
        """Merge ``diff`` into the statistics of every issue of ``discussion``.

        Each issue is updated in its own transaction. A failing issue does not
        stop the others.

        Args:
            discussion: Discussion as committed; its issue_keys are updated
            diff: Summary diff to merge
            message_ids: Ids of the messages behind the diff, for error reporting

        Returns:
            Keys of the updated issues

        Raises:
            PropagationError: Naming every issue that could not be updated
        """
        collection = self.config.issues_collection
        failures: dict[str, Exception] = {}
        updated: list[str] = []

        for issue_key in discussion.issue_keys:
            try:
                self.document_store.run_in_transaction(
                    lambda txn, key=issue_key: merge_issue_summary(
                        txn, key, discussion.source, diff, collection
                    ),
                    attempts=self.config.issue_tx_attempts,
                    retry_config=self.config.retry_config,
                )
            except (DiscussionError, DocumentStoreError) as e:
                self.logger.error(
                    f"Failed to update discussion summary for {issue_key}: {e}",
                    discussion_id=discussion.id,
                    issue_key=issue_key,
                    message_ids=message_ids or [],
                )
                failures[issue_key] = e
                continue
            except Exception as e:
                self.logger.exception(
                    f"Unexpected error updating discussion summary for {issue_key}: {e}",
                    discussion_id=discussion.id,
                    issue_key=issue_key,
                    message_ids=message_ids or [],
                )
                failures[issue_key] = e
                continue
            updated.append(issue_key)

        if failures:
            self._count_failure("issue_propagation", len(failures))
            raise PropagationError(
                failures,
                message_ids=message_ids,
                discussion_id=discussion.id,
                updated_issue_keys=updated,
            )
        return updated

    def discussions_for_issue(self, issue_key: str) -> list[Discussion]:
        """Return the discussions that reference the issue ``issue_key``."""
        return discussions_for_issue(
            self.document_store, issue_key, self.config.discussions_collection
        )

    def _count_failure(self, reason: str, count: int = 1) -> None:
        if self.metrics_collector:
            self.metrics_collector.increment(
                "discussion_merge_failures_total", count, tags={"reason": reason}
            )
