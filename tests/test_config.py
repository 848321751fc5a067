# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Tests for discussion configuration."""

import pytest

from issue_discussions import MAX_MESSAGES_IN_DISCUSSION, DiscussionConfig
from issue_discussions.config import ENV_VARS


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for env_var in ENV_VARS.values():
        monkeypatch.delenv(env_var, raising=False)


class TestDiscussionConfig:
    """Tests for DiscussionConfig."""

    def test_defaults(self):
        config = DiscussionConfig.from_env()

        assert config.max_messages_in_discussion == MAX_MESSAGES_IN_DISCUSSION
        assert config.discussion_tx_attempts == 15
        assert config.issue_tx_attempts == 15
        assert config.discussions_collection == "discussions"
        assert config.issues_collection == "issues"

    def test_environment_values(self, monkeypatch):
        monkeypatch.setenv("DISCUSSION_MAX_MESSAGES", "100")
        monkeypatch.setenv("ISSUE_TX_ATTEMPTS", "4")
        monkeypatch.setenv("ISSUES_COLLECTION", "bugs")

        config = DiscussionConfig.from_env()

        assert config.max_messages_in_discussion == 100
        assert config.issue_tx_attempts == 4
        assert config.issues_collection == "bugs"

    def test_explicit_values_win(self, monkeypatch):
        monkeypatch.setenv("DISCUSSION_TX_ATTEMPTS", "4")

        config = DiscussionConfig.from_env(discussion_tx_attempts=9)

        assert config.discussion_tx_attempts == 9

    def test_invalid_integer(self, monkeypatch):
        monkeypatch.setenv("DISCUSSION_TX_ATTEMPTS", "many")

        with pytest.raises(ValueError, match="DISCUSSION_TX_ATTEMPTS"):
            DiscussionConfig.from_env()

    def test_out_of_range(self):
        with pytest.raises(ValueError, match="max_messages_in_discussion"):
            DiscussionConfig(max_messages_in_discussion=0)
        with pytest.raises(ValueError, match="retry_base_delay_ms"):
            DiscussionConfig(retry_base_delay_ms=-5)

    def test_unknown_override(self):
        with pytest.raises(TypeError, match="Unknown configuration keys"):
            DiscussionConfig.from_env(colour="blue")

    def test_retry_config(self):
        config = DiscussionConfig(retry_base_delay_ms=5, retry_max_delay_ms=40)

        assert config.retry_config.base_delay_ms == 5
        assert config.retry_config.max_delay_ms == 40
