# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Tests for message deduplication and retention."""

import random

import pytest
from conftest import at

from issue_discussions import MAX_MESSAGES_IN_DISCUSSION, DiscussionMessage, Summary, add_messages


def _msg(message_id: str, minutes: int, external: bool = False) -> DiscussionMessage:
    return DiscussionMessage(id=message_id, time=at(minutes), external=external)


class TestAddMessages:
    """Tests for add_messages."""

    def test_add_to_empty_discussion(self):
        """Test accepting messages into an empty history."""
        messages, diff = add_messages([], [_msg("a", 1, external=True), _msg("b", 2)])

        assert [m.id for m in messages] == ["a", "b"]
        assert diff == Summary(all_messages=2, external_messages=1, last_message=at(2))

    def test_known_messages_are_ignored(self):
        """Test that messages already in the history do not count again."""
        current = [_msg("a", 1, external=True)]

        messages, diff = add_messages(current, [_msg("a", 1, external=True)])

        assert messages == current
        assert diff.is_empty()

    def test_duplicates_within_batch(self):
        """Test that a message repeated inside one batch is accepted once."""
        messages, diff = add_messages([], [_msg("a", 1), _msg("a", 1), _msg("b", 2)])

        assert [m.id for m in messages] == ["a", "b"]
        assert diff.all_messages == 2

    def test_diff_only_reflects_new_messages(self):
        """Test that the diff ignores what was already stored."""
        current = [_msg("a", 50, external=True)]

        _, diff = add_messages(current, [_msg("a", 50, external=True), _msg("b", 3)])

        assert diff == Summary(all_messages=1, external_messages=0, last_message=at(3))

    def test_out_of_order_delivery_is_sorted(self):
        """Test that the history stays sorted by time."""
        messages, _ = add_messages([_msg("b", 5)], [_msg("c", 9), _msg("a", 1)])
        messages, _ = add_messages(messages, [_msg("d", 3)])

        assert [m.id for m in messages] == ["a", "d", "b", "c"]

    def test_random_insertion_order_is_sorted(self):
        """Test ordering for arbitrary arrival order across several calls."""
        incoming = [_msg(f"m{i}", i) for i in range(40)]
        random.Random(7).shuffle(incoming)

        messages = []
        for start in range(0, len(incoming), 7):
            messages, _ = add_messages(messages, incoming[start:start + 7])

        times = [m.time for m in messages]
        assert times == sorted(times)
        assert len(messages) == 40

    def test_limit_keeps_most_recent(self):
        """Test that the oldest messages are dropped beyond the limit."""
        messages, diff = add_messages([], [_msg(f"m{i}", i) for i in range(10)], limit=4)

        assert [m.id for m in messages] == ["m6", "m7", "m8", "m9"]
        assert diff.all_messages == 10

    def test_limit_across_calls(self):
        """Test that eviction applies after merging with the stored history."""
        messages, _ = add_messages([], [_msg("old", 1), _msg("mid", 5)], limit=2)
        messages, diff = add_messages(messages, [_msg("new", 9)], limit=2)

        assert [m.id for m in messages] == ["mid", "new"]
        assert diff.all_messages == 1

    def test_default_limit(self):
        """Test the default retention bound."""
        incoming = [_msg(f"m{i}", i) for i in range(MAX_MESSAGES_IN_DISCUSSION + 5)]

        messages, diff = add_messages([], incoming)

        assert len(messages) == MAX_MESSAGES_IN_DISCUSSION
        assert messages[0].id == "m5"
        assert diff.all_messages == MAX_MESSAGES_IN_DISCUSSION + 5

    def test_empty_batch(self):
        """Test that an empty batch returns an empty diff."""
        current = [_msg("a", 1)]

        messages, diff = add_messages(current, [])

        assert messages == current
        assert diff == Summary()

    def test_input_is_not_modified(self):
        """Test that the passed-in history list is left untouched."""
        current = [_msg("b", 2)]

        add_messages(current, [_msg("a", 1)])

        assert [m.id for m in current] == ["b"]

    def test_invalid_limit(self):
        """Test that a non-positive limit is rejected."""
        with pytest.raises(ValueError, match="limit"):
            add_messages([], [_msg("a", 1)], limit=0)
