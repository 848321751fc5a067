# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Finding the discussion a message belongs to."""

import logging

from .exceptions import AmbiguousThreadError
from .models import Discussion, DiscussionMessage, DiscussionUpdate, NewDiscussionMessage

logger = logging.getLogger(__name__)


def discussion_by_message_id(
    reader,
    source: str,
    message_id: str,
    collection: str = "discussions",
) -> Discussion | None:
    """Find the discussion of ``source`` that contains ``message_id``.

    Args:
        reader: Document store or transaction to query
        source: Discussion source to search in
        message_id: Message id to look for
        collection: Collection holding discussions

    Returns:
        The discussion, or None if no discussion contains the message

    Raises:
        AmbiguousThreadError: If several discussions contain the message
    """
    # Two results are enough to tell an unambiguous match from an ambiguous one.
    docs = reader.query_documents(
        collection, {"source": source, "messages.id": message_id}, limit=2
    )
    if not docs:
        return None
    if len(docs) > 1:
        logger.error(
            "Message %s of %s is present in discussions %s",
            message_id, source, [doc["id"] for doc in docs],
        )
        raise AmbiguousThreadError(source, message_id)
    return Discussion.from_document(docs[0])


def discussions_for_issue(
    reader,
    issue_key: str,
    collection: str = "discussions",
) -> list[Discussion]:
    """Return every discussion that references the issue ``issue_key``."""
    docs = reader.query_documents(collection, {"issue_keys": issue_key}, limit=None)
    return [Discussion.from_document(doc) for doc in docs]


def build_update(
    reader,
    message: NewDiscussionMessage,
    collection: str = "discussions",
) -> DiscussionUpdate:
    """Turn a received message into an update of the discussion it belongs to.

    A reply to a known message joins that message's discussion and inherits its
    type. Anything else starts a new discussion headed by the message itself.
    That includes replies to messages never seen: only the visible sub-thread
    is tracked, and it is not re-linked if its parent shows up later.

    Raises:
        AmbiguousThreadError: If the replied-to message is in several discussions
    """
    update = DiscussionUpdate(
        source=message.source,
        id="",
        type=message.type,
        issue_ids=list(message.issue_ids),
    )
    if message.in_reply_to:
        parent = discussion_by_message_id(reader, message.source, message.in_reply_to, collection)
        if parent is not None:
            update.id = parent.id
            update.type = parent.type
        else:
            logger.debug(
                "Parent %s of %s is unknown, starting a new discussion",
                message.in_reply_to, message.id,
            )
    if not update.id:
        update.id = message.id
        update.subject = message.subject
    update.messages.append(
        DiscussionMessage(id=message.id, time=message.time, external=message.external)
    )
    return update
