# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Web links to discussions."""

from .models import LORE_SOURCE, Discussion

LORE_THREAD_URL = "https://lore.kernel.org/all/{message_id}/T/"


def discussion_link(discussion: Discussion) -> str:
    """Return a link to the discussion's thread view, or "" for unknown sources."""
    if discussion.source == LORE_SOURCE:
        return LORE_THREAD_URL.format(message_id=discussion.id.strip("<>"))
    return ""
