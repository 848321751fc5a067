# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Discussion tracking for issues.

Folds mailing-list messages that reference issues into deduplicated
discussion documents and keeps per-issue discussion statistics current.
"""

__version__ = "0.1.0"

from .config import DiscussionConfig
from .coordinator import DiscussionMerger
from .exceptions import (
    AmbiguousThreadError,
    DiscussionError,
    IssueLookupError,
    IssueNotFoundError,
    NoMessagesError,
    PropagationError,
)
from .history import MAX_MESSAGES_IN_DISCUSSION, add_messages
from .issue_lookup import DocumentIssueLookup, IssueLookup, StaticIssueLookup
from .links import discussion_link
from .logger import Logger, SilentLogger, StdoutLogger, create_logger
from .metrics import MetricsCollector, NoOpMetricsCollector
from .models import (
    LORE_SOURCE,
    Discussion,
    DiscussionMessage,
    DiscussionType,
    DiscussionUpdate,
    IssueDiscussionInfo,
    MergeResult,
    NewDiscussionMessage,
    Summary,
    discussion_key,
)
from .propagator import merge_issue_summary
from .resolver import build_update, discussion_by_message_id, discussions_for_issue
from .storage import (
    DocumentStore,
    DocumentStoreError,
    InMemoryDocumentStore,
    MongoDocumentStore,
    TransactionConflictError,
    TransactionFailedError,
    TransactionScopeError,
    create_document_store,
)
from .summary import (
    combine_summaries,
    issue_discussion_summary,
    merge_summaries,
    promote_patch_activity,
)

__all__ = [
    # Version
    "__version__",
    # Merging
    "DiscussionMerger",
    "DiscussionConfig",
    "add_messages",
    "MAX_MESSAGES_IN_DISCUSSION",
    "merge_issue_summary",
    "build_update",
    "discussion_by_message_id",
    "discussions_for_issue",
    "discussion_link",
    # Summaries
    "merge_summaries",
    "promote_patch_activity",
    "combine_summaries",
    "issue_discussion_summary",
    # Models
    "LORE_SOURCE",
    "Discussion",
    "DiscussionMessage",
    "DiscussionType",
    "DiscussionUpdate",
    "IssueDiscussionInfo",
    "MergeResult",
    "NewDiscussionMessage",
    "Summary",
    "discussion_key",
    # Issue lookup
    "IssueLookup",
    "DocumentIssueLookup",
    "StaticIssueLookup",
    # Storage
    "DocumentStore",
    "InMemoryDocumentStore",
    "MongoDocumentStore",
    "create_document_store",
    # Logging and metrics
    "Logger",
    "StdoutLogger",
    "SilentLogger",
    "create_logger",
    "MetricsCollector",
    "NoOpMetricsCollector",
    # Exceptions
    "DiscussionError",
    "NoMessagesError",
    "IssueLookupError",
    "IssueNotFoundError",
    "AmbiguousThreadError",
    "PropagationError",
    "DocumentStoreError",
    "TransactionConflictError",
    "TransactionFailedError",
    "TransactionScopeError",
]
