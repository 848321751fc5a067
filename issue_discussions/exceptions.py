# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Exceptions for discussion tracking operations."""


class DiscussionError(Exception):
    """Base exception for discussion tracking errors."""
    pass


class NoMessagesError(DiscussionError):
    """Raised when a discussion update carries no messages."""

    def __init__(self, discussion_id: str = None):
        """Initialize NoMessagesError.

        Args:
            discussion_id: Discussion the empty update was meant for (optional)
        """
        message = "no messages"
        if discussion_id:
            message += f" (discussion: {discussion_id})"
        super().__init__(message)
        self.discussion_id = discussion_id


class IssueLookupError(DiscussionError):
    """Raised when an external issue id cannot be mapped to an issue key."""

    def __init__(self, issue_id: str, reason: str = None):
        """Initialize IssueLookupError.

        Args:
            issue_id: External (reporting) issue id that failed to resolve
            reason: Human readable failure reason (optional)
        """
        message = f"failed to find issue for {issue_id}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.issue_id = issue_id
        self.reason = reason


class IssueNotFoundError(DiscussionError):
    """Raised when an issue document is missing from the store."""

    def __init__(self, issue_key: str):
        super().__init__(f"issue {issue_key} does not exist")
        self.issue_key = issue_key


class AmbiguousThreadError(DiscussionError):
    """Raised when a message id is present in several discussions."""

    def __init__(self, source: str, message_id: str):
        """Initialize AmbiguousThreadError.

        Args:
            source: Discussion source that was searched
            message_id: Message id found in more than one discussion
        """
        super().__init__(
            f"message {message_id} is present in several discussions (source: {source})"
        )
        self.source = source
        self.message_id = message_id


class PropagationError(DiscussionError):
    """Raised when some issue summaries could not be updated.

    The discussion itself is already committed at this point. Issues that are
    not listed in ``failures`` were updated successfully.
    """

    def __init__(
        self,
        failures: dict,
        message_ids: list = None,
        discussion_id: str = None,
        updated_issue_keys: list = None,
    ):
        """Initialize PropagationError.

        Args:
            failures: Mapping of issue key to the exception that stopped its update
            message_ids: Ids of the messages whose diff was being propagated
            discussion_id: Id of the already committed discussion
            updated_issue_keys: Issues that were updated successfully
        """
        keys = ", ".join(sorted(failures))
        message = f"failed to update discussion summary for {keys}"
        if discussion_id:
            message += f" (discussion: {discussion_id})"
        super().__init__(message)
        self.failures = dict(failures)
        self.message_ids = list(message_ids or [])
        self.discussion_id = discussion_id
        self.updated_issue_keys = list(updated_issue_keys or [])

    @property
    def issue_keys(self) -> list:
        """Sorted keys of the issues that failed to update."""
        return sorted(self.failures)
