# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Message history of a discussion: deduplication, ordering and retention."""

from collections.abc import Iterable
from dataclasses import replace

from .models import DiscussionMessage, Summary, as_utc
from .summary import merge_summaries

# Oldest messages beyond this bound are dropped. Summary counters keep counting.
MAX_MESSAGES_IN_DISCUSSION = 1500


def add_messages(
    current: Iterable[DiscussionMessage],
    incoming: Iterable[DiscussionMessage],
    limit: int = MAX_MESSAGES_IN_DISCUSSION,
) -> tuple[list[DiscussionMessage], Summary]:
    """Add new messages to a discussion's message list.

    Messages whose id is already known are skipped, so delivering the same
    message twice is a no-op.

    Args:
        current: Messages currently stored for the discussion
        incoming: Messages to add
        limit: Maximum number of messages to keep

    Returns:
        Tuple of the new message list (sorted by time, at most ``limit`` long)
        and the summary diff of the accepted messages. The diff is returned
        even when no message was accepted.
    """
    if limit < 1:
        raise ValueError(f"limit must be positive, got {limit}")

    messages = list(current)
    known_ids = {message.id for message in messages}
    diff = Summary()

    for message in incoming:
        if message.id in known_ids:
            continue
        known_ids.add(message.id)
        message = replace(message, time=as_utc(message.time))
        diff = merge_summaries(
            diff,
            Summary(
                all_messages=1,
                external_messages=1 if message.external else 0,
                last_message=message.time,
            ),
        )
        messages.append(message)

    messages.sort(key=lambda message: message.time)
    if len(messages) > limit:
        messages = messages[len(messages) - limit:]
    return messages, diff
