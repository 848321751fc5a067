# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Summary aggregation.

Summaries form a commutative monoid: counters add up and timestamps keep the
latest value. The same diff can therefore be folded into the discussion and
into every referenced issue without re-reading the messages it came from.
"""

from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime
from typing import Any

from .models import IssueDiscussionInfo, Summary


def _later(first: datetime | None, second: datetime | None) -> datetime | None:
    if first is None:
        return second
    if second is None:
        return first
    return second if first < second else first


def merge_summaries(existing: Summary, diff: Summary) -> Summary:
    """Return ``existing`` with ``diff`` merged into it.

    Args:
        existing: Summary absorbing the diff
        diff: Summary to absorb

    Returns:
        New summary; neither argument is modified
    """
    return Summary(
        all_messages=existing.all_messages + diff.all_messages,
        external_messages=existing.external_messages + diff.external_messages,
        last_message=_later(existing.last_message, diff.last_message),
        last_patch_message=_later(existing.last_patch_message, diff.last_patch_message),
    )


def promote_patch_activity(diff: Summary) -> Summary:
    """Treat every message of the diff as patch activity.

    Applied to diffs of patch discussions before they are merged anywhere.
    """
    return replace(diff, last_patch_message=diff.last_message)


def combine_summaries(summaries: Iterable[Summary]) -> Summary:
    """Merge any number of summaries into one."""
    result = Summary()
    for summary in summaries:
        result = merge_summaries(result, summary)
    return result


def issue_discussion_summary(issue_doc: dict[str, Any]) -> Summary:
    """Overall discussion summary of an issue, across all sources."""
    return combine_summaries(
        IssueDiscussionInfo.from_document(item).summary
        for item in issue_doc.get("discussion_info", [])
    )
