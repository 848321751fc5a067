# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Merging discussion diffs into issue statistics."""

from .exceptions import IssueNotFoundError
from .models import IssueDiscussionInfo, Summary
from .storage import DocumentTransaction
from .summary import merge_summaries


def merge_issue_summary(
    txn: DocumentTransaction,
    issue_key: str,
    source: str,
    diff: Summary,
    collection: str = "issues",
) -> Summary:
    """Merge ``diff`` into the issue's statistics for ``source``.

    Touches only the issue document, so it fits a single-document transaction.
    An issue has one entry per discussion source; there are few sources, so the
    entry is found by a linear scan and created on first use.

    Args:
        txn: Transaction to read and write through
        issue_key: Key of the issue document
        source: Discussion source the diff comes from
        diff: Summary diff to merge
        collection: Collection holding issues

    Returns:
        The updated per-source summary

    Raises:
        IssueNotFoundError: If the issue does not exist
    """
    issue = txn.get_document(collection, issue_key)
    if issue is None:
        raise IssueNotFoundError(issue_key)

    entries = [IssueDiscussionInfo.from_document(item) for item in issue.get("discussion_info", [])]
    record = None
    for entry in entries:
        if entry.source == source:
            record = entry
            break
    if record is None:
        record = IssueDiscussionInfo(source=source)
        entries.append(record)

    record.summary = merge_summaries(record.summary, diff)
    issue["discussion_info"] = [entry.to_document() for entry in entries]
    txn.put_document(collection, issue_key, issue)
    return record.summary
