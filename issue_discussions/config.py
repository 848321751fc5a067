# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Configuration for discussion tracking."""

import os
from dataclasses import dataclass, fields

from .history import MAX_MESSAGES_IN_DISCUSSION
from .retry_policy import DEFAULT_TRANSACTION_ATTEMPTS, RetryConfig

# Environment variable for each configuration field.
ENV_VARS = {
    "max_messages_in_discussion": "DISCUSSION_MAX_MESSAGES",
    "discussion_tx_attempts": "DISCUSSION_TX_ATTEMPTS",
    "issue_tx_attempts": "ISSUE_TX_ATTEMPTS",
    "retry_base_delay_ms": "DISCUSSION_RETRY_BASE_DELAY_MS",
    "retry_max_delay_ms": "DISCUSSION_RETRY_MAX_DELAY_MS",
    "discussions_collection": "DISCUSSIONS_COLLECTION",
    "issues_collection": "ISSUES_COLLECTION",
}


@dataclass(frozen=True)
class DiscussionConfig:
    """Settings of the discussion merger.

    Attributes:
        max_messages_in_discussion: Messages kept per discussion
        discussion_tx_attempts: Attempts for the discussion transaction
        issue_tx_attempts: Attempts for each per-issue transaction
        retry_base_delay_ms: Base backoff delay between attempts
        retry_max_delay_ms: Backoff delay cap
        discussions_collection: Collection holding discussions
        issues_collection: Collection holding issues
    """
    max_messages_in_discussion: int = MAX_MESSAGES_IN_DISCUSSION
    discussion_tx_attempts: int = DEFAULT_TRANSACTION_ATTEMPTS
    issue_tx_attempts: int = DEFAULT_TRANSACTION_ATTEMPTS
    retry_base_delay_ms: int = 50
    retry_max_delay_ms: int = 2000
    discussions_collection: str = "discussions"
    issues_collection: str = "issues"

    def __post_init__(self):
        for name in ("max_messages_in_discussion", "discussion_tx_attempts", "issue_tx_attempts"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1, got {getattr(self, name)}")
        for name in ("retry_base_delay_ms", "retry_max_delay_ms"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative, got {getattr(self, name)}")
        if not self.discussions_collection or not self.issues_collection:
            raise ValueError("collection names must not be empty")

    @property
    def retry_config(self) -> RetryConfig:
        """Backoff settings shared by all transactions."""
        return RetryConfig(
            base_delay_ms=self.retry_base_delay_ms,
            max_delay_ms=self.retry_max_delay_ms,
        )

    @classmethod
    def from_env(cls, **overrides) -> "DiscussionConfig":
        """Build a configuration from environment variables.

        Explicit keyword arguments take precedence over environment variables,
        which take precedence over the defaults.

        Raises:
            ValueError: If a value cannot be parsed or is out of range
        """
        values = {}
        for f in fields(cls):
            if f.name in overrides:
                values[f.name] = overrides.pop(f.name)
                continue
            raw = os.getenv(ENV_VARS[f.name])
            if raw is None or raw == "":
                continue
            if f.type in (int, "int"):
                try:
                    values[f.name] = int(raw)
                except ValueError as e:
                    raise ValueError(f"{ENV_VARS[f.name]} must be an integer, got {raw!r}") from e
            else:
                values[f.name] = raw
        if overrides:
            raise TypeError(f"Unknown configuration keys: {sorted(overrides)}")
        return cls(**values)
