"""Tests for the grouping policy."""

from cachet_sync.grouping import resolve_group_id

GROUPS = {"web": 2, "databases": 3}


class TestResolveGroupId:
    def test_mapped_group(self):
        assert resolve_group_id("web", GROUPS, 1) == 2

    def test_unknown_group_falls_back(self):
        assert resolve_group_id("queues", GROUPS, 1) == 1

    def test_empty_group_falls_back(self):
        assert resolve_group_id("", {"": 9}, 1) == 1

    def test_missing_group_falls_back(self):
        assert resolve_group_id(None, GROUPS, 4) == 4

    def test_default_is_zero(self):
        assert resolve_group_id(None, {}) == 0
