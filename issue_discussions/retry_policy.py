# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Retry policy for optimistic transactions: exponential backoff with full jitter."""

import random
import time
from dataclasses import dataclass

# Default attempt ceiling for discussion and issue transactions.
DEFAULT_TRANSACTION_ATTEMPTS = 15


@dataclass
class RetryConfig:
    """Configuration for transaction retry behavior.

    Attributes:
        max_attempts: Maximum number of attempts, including the first one (default: 15)
        base_delay_ms: Base delay in milliseconds (default: 50)
        backoff_factor: Exponential backoff multiplier (default: 2.0)
        max_delay_ms: Maximum delay cap in milliseconds (default: 2000)
        use_jitter: Whether to apply full jitter to delays (default: True)
    """
    max_attempts: int = DEFAULT_TRANSACTION_ATTEMPTS
    base_delay_ms: int = 50
    backoff_factor: float = 2.0
    max_delay_ms: int = 2000
    use_jitter: bool = True

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("retry delays must not be negative")


class RetryPolicy:
    """Decides whether and how long to wait before the next attempt."""

    def __init__(self, config: RetryConfig | None = None):
        """Initialize retry policy.

        Args:
            config: Retry configuration (uses defaults if None)
        """
        self.config = config or RetryConfig()

    def calculate_delay_ms(self, attempt_number: int) -> int:
        """Calculate the delay to apply before the given attempt.

        Args:
            attempt_number: Attempt about to run (1-indexed)

        Returns:
            Delay in milliseconds (with jitter if enabled)
        """
        if attempt_number <= 1:
            return 0

        delay_ms = int(self.config.base_delay_ms * (self.config.backoff_factor ** (attempt_number - 2)))
        delay_ms = min(delay_ms, self.config.max_delay_ms)

        if self.config.use_jitter:
            delay_ms = random.randint(0, delay_ms)

        return delay_ms

    def should_retry(self, attempt_number: int) -> bool:
        """Return True if another attempt may follow ``attempt_number``."""
        return attempt_number < self.config.max_attempts

    def sleep(self, delay_ms: int) -> None:
        """Sleep for the specified delay.

        Args:
            delay_ms: Delay in milliseconds
        """
        if delay_ms > 0:
            time.sleep(delay_ms / 1000.0)
