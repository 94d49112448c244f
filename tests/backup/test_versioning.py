"""Tests for snapshot version parsing and allocation."""

from __future__ import annotations

import pytest

from branchvault.backup.versioning import (
    FIRST_VERSION,
    SnapshotVersion,
    VersionAllocator,
    parse_version,
)


@pytest.fixture
def allocator() -> VersionAllocator:
    return VersionAllocator()


class TestSnapshotVersion:
    def test_str(self):
        assert str(SnapshotVersion(2, 13)) == "2.13"

    def test_ordering_is_numeric(self):
        assert SnapshotVersion(1, 10) > SnapshotVersion(1, 9)
        assert SnapshotVersion(2, 0) > SnapshotVersion(1, 99)

    def test_next_minor(self):
        assert SnapshotVersion(3, 4).next_minor() == SnapshotVersion(3, 5)

    @pytest.mark.parametrize("major,minor", [(0, 0), (1, -1)])
    def test_rejects_out_of_range(self, major, minor):
        with pytest.raises(ValueError):
            SnapshotVersion(major, minor)


class TestParseVersion:
    def test_snapshot_branch(self):
        assert parse_version("v1.2/2024-02-01_00-00-00") == SnapshotVersion(1, 2)

    def test_bare_version_prefix(self):
        assert parse_version("v4.0-hotfix") == SnapshotVersion(4, 0)

    @pytest.mark.parametrize("name", ["main", "feature/v1.0", "v1", "vx.1/2024", "v0.3/2024-01-01_00-00-00"])
    def test_non_matching_names(self, name):
        assert parse_version(name) is None


class TestAllocate:
    def test_highest_major_then_minor(self, allocator):
        names = ["v1.0/2024-01-01_00-00-00", "v1.2/2024-02-01_00-00-00", "v2.0/2024-03-01_00-00-00"]
        assert allocator.allocate(names) == SnapshotVersion(2, 1)

    def test_empty_list_starts_at_first_version(self, allocator):
        assert allocator.allocate([]) == FIRST_VERSION == SnapshotVersion(1, 0)

    def test_unrelated_branches_are_ignored(self, allocator):
        assert allocator.allocate(["main", "develop", "feature/x"]) == SnapshotVersion(1, 0)

    def test_minor_compared_numerically(self, allocator):
        assert allocator.allocate(["v1.9/a", "v1.10/b", "v1.2/c"]) == SnapshotVersion(1, 11)

    def test_lower_major_with_higher_minor_does_not_win(self, allocator):
        assert allocator.allocate(["v1.40/a", "v2.3/b"]) == SnapshotVersion(2, 4)

    def test_zero_major_branches_do_not_count(self, allocator):
        assert allocator.allocate(["v0.5/2024-01-01_00-00-00"]) == FIRST_VERSION
        assert allocator.allocate(["v0.9/a", "v1.3/b"]) == SnapshotVersion(1, 4)

    def test_major_is_never_bumped(self, allocator):
        assert allocator.allocate(["v3.0/a"]).major == 3


class TestAllocateFrom:
    def test_uses_enumerator(self, allocator):
        allocation = allocator.allocate_from(lambda: ["v1.0/a"])
        assert allocation.version == SnapshotVersion(1, 1)
        assert allocation.warning is None

    def test_enumeration_failure_degrades_to_first_version(self, allocator, caplog):
        def broken():
            raise ConnectionError("network down")

        allocation = allocator.allocate_from(broken)

        assert allocation.version == FIRST_VERSION
        assert "network down" in allocation.warning
        assert "Could not enumerate" in caplog.text
