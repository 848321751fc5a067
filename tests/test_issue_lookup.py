# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Tests for issue lookups."""

import pytest

from issue_discussions import DocumentIssueLookup, IssueLookupError, StaticIssueLookup


class TestDocumentIssueLookup:
    """Tests for DocumentIssueLookup."""

    def test_resolve(self, document_store):
        lookup = DocumentIssueLookup(document_store)

        assert lookup.resolve("ext-2") == "issue-2"

    def test_unknown_id(self, document_store):
        lookup = DocumentIssueLookup(document_store)

        with pytest.raises(IssueLookupError) as exc_info:
            lookup.resolve("ext-404")

        assert exc_info.value.issue_id == "ext-404"
        assert "ext-404" in str(exc_info.value)

    def test_shared_reporting_id(self, document_store):
        """Test that an id matching two issues is not resolved to either."""
        document_store.put_document("issues", "issue-3", {"reporting_ids": ["ext-1"]})
        lookup = DocumentIssueLookup(document_store)

        with pytest.raises(IssueLookupError, match="several issues"):
            lookup.resolve("ext-1")

    def test_store_failure(self, document_store):
        document_store.disconnect()
        lookup = DocumentIssueLookup(document_store)

        with pytest.raises(IssueLookupError):
            lookup.resolve("ext-1")

    def test_resolve_all_stops_at_first_failure(self, document_store):
        lookup = DocumentIssueLookup(document_store)

        assert lookup.resolve_all(["ext-1", "ext-2"]) == ["issue-1", "issue-2"]
        with pytest.raises(IssueLookupError) as exc_info:
            lookup.resolve_all(["ext-1", "nope", "ext-2"])
        assert exc_info.value.issue_id == "nope"


class TestStaticIssueLookup:
    """Tests for StaticIssueLookup."""

    def test_resolve(self):
        assert StaticIssueLookup({"a": "issue-a"}).resolve("a") == "issue-a"

    def test_unknown_id(self):
        with pytest.raises(IssueLookupError):
            StaticIssueLookup({}).resolve("a")
