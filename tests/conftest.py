# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Pytest configuration and fixtures for discussion tracking tests."""

from datetime import datetime, timedelta, timezone

import pytest

from issue_discussions import (
    DiscussionConfig,
    DiscussionMerger,
    DocumentIssueLookup,
    InMemoryDocumentStore,
    NoOpMetricsCollector,
    SilentLogger,
)

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    """Return a timestamp ``minutes`` after BASE_TIME."""
    return BASE_TIME + timedelta(minutes=minutes)


def make_issue(reporting_id: str, title: str = "KASAN: use-after-free") -> dict:
    """Build an issue document without discussion statistics."""
    return {"title": title, "reporting_ids": [reporting_id], "discussion_info": []}


@pytest.fixture
def document_store():
    """Connected in-memory document store holding two issues."""
    store = InMemoryDocumentStore()
    store.connect()
    store.put_document("issues", "issue-1", make_issue("ext-1"))
    store.put_document("issues", "issue-2", make_issue("ext-2", "WARNING in foo"))
    return store


@pytest.fixture
def config():
    """Configuration without backoff delays."""
    return DiscussionConfig(retry_base_delay_ms=0, retry_max_delay_ms=0)


@pytest.fixture
def logger():
    return SilentLogger()


@pytest.fixture
def metrics():
    return NoOpMetricsCollector()


@pytest.fixture
def merger(document_store, config, logger, metrics):
    """Discussion merger wired to the in-memory store."""
    return DiscussionMerger(
        document_store,
        DocumentIssueLookup(document_store),
        config=config,
        logger=logger,
        metrics_collector=metrics,
    )
