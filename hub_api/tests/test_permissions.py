"""
Tests for hub_api/services/permissions.py
"""

from __future__ import annotations

from itertools import chain, combinations

from hub_api.services.permissions import has_all, has_any, has_permission

PERMISSIONS = ("read", "create", "update", "delete")


def _subsets():
    return [set(c) for c in chain.from_iterable(combinations(PERMISSIONS, n) for n in range(len(PERMISSIONS) + 1))]


class TestHasPermission:
    def test_granted(self):
        assert has_permission(["read", "create"], "read")

    def test_not_granted(self):
        assert not has_permission(["read"], "delete")

    def test_empty_grant(self):
        assert not has_permission([], "read")


class TestHasAny:
    def test_overlap(self):
        assert has_any({"read"}, {"read", "delete"})

    def test_disjoint(self):
        assert not has_any({"read"}, {"update", "delete"})

    def test_empty_required_is_false(self):
        assert not has_any({"read"}, set())


class TestHasAll:
    def test_every_subset_pair(self):
        for granted in _subsets():
            for required in _subsets():
                expected = all(p in granted for p in required)
                assert has_all(granted, required) is expected, (granted, required)

    def test_empty_required_always_true(self):
        for granted in _subsets():
            assert has_all(granted, set())

    def test_accepts_lists_and_frozensets(self):
        assert has_all(frozenset({"read", "update"}), ["update"])
        assert not has_all(["read"], ("read", "create"))
