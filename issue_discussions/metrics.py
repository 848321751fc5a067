# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Metrics collection abstraction."""

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)

Tags = dict[str, str] | None


class MetricsCollector(ABC):
    """Abstract base class for metrics collectors."""

    @abstractmethod
    def increment(self, name: str, value: float = 1.0, tags: Tags = None) -> None:
        """Increment a counter metric.

        Args:
            name: Name of the counter metric
            value: Amount to increment by (default: 1.0)
            tags: Optional dictionary of tags/labels for the metric
        """
        pass

    @abstractmethod
    def observe(self, name: str, value: float, tags: Tags = None) -> None:
        """Observe a value for histogram/summary metrics, such as a duration."""
        pass

    @abstractmethod
    def gauge(self, name: str, value: float, tags: Tags = None) -> None:
        """Set a gauge metric to a specific value."""
        pass


class NoOpMetricsCollector(MetricsCollector):
    """Metrics collector that only records calls in memory.

    Suitable where no metrics backend is configured, and for tests.
    """

    def __init__(self):
        self.counters: list[tuple[str, float, Tags]] = []
        self.observations: list[tuple[str, float, Tags]] = []
        self.gauges: list[tuple[str, float, Tags]] = []

    def increment(self, name: str, value: float = 1.0, tags: Tags = None) -> None:
        self.counters.append((name, value, tags))
        logger.debug(f"NoOpMetricsCollector: increment {name} by {value} with tags {tags}")

    def observe(self, name: str, value: float, tags: Tags = None) -> None:
        self.observations.append((name, value, tags))
        logger.debug(f"NoOpMetricsCollector: observe {name} value {value} with tags {tags}")

    def gauge(self, name: str, value: float, tags: Tags = None) -> None:
        self.gauges.append((name, value, tags))
        logger.debug(f"NoOpMetricsCollector: gauge {name} set to {value} with tags {tags}")

    def get_counter_total(self, name: str, tags: Tags = None) -> float:
        """Get total value of a counter metric.

        Args:
            name: Name of the counter metric
            tags: Optional tags to filter by (if None, sums all matching names)

        Returns:
            Total counter value
        """
        return sum(
            value for counter_name, value, counter_tags in self.counters
            if counter_name == name and (tags is None or counter_tags == tags)
        )

    def get_observations(self, name: str) -> list[float]:
        """Get all observed values for a metric."""
        return [value for obs_name, value, _ in self.observations if obs_name == name]
