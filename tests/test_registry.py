"""
Tests for the migration registry and version comparison.

Tests cover:
- Numeric (not lexical) version ordering
- Pending range selection between two versions
- Duplicate and invalid versions
- The module's default registry
"""

import pytest

from psionics_migrations.errors import InvalidVersionError
from psionics_migrations.migrations import (
    MigrationRegistry,
    build_default_registry,
    is_newer_version,
    version_tuple,
)


async def noop() -> None:
    return None


def registry_of(*versions: str) -> MigrationRegistry:
    return MigrationRegistry({version: noop for version in versions})


class TestVersionComparison:
    """Test suite for version parsing and comparison."""

    def test_numeric_ordering(self):
        assert is_newer_version("0.10.0", "0.9.0")
        assert not is_newer_version("0.9.0", "0.10.0")

    def test_equal_versions_not_newer(self):
        assert not is_newer_version("0.5.0", "0.5.0")

    def test_trailing_zeros_ignored(self):
        assert version_tuple("0.5") == version_tuple("0.5.0")
        assert not is_newer_version("0.5.0", "0.5")

    def test_prefix_and_suffix(self):
        assert version_tuple("v1.2.3") == (1, 2, 3)
        assert version_tuple("1.2.0-beta") == (1, 2)

    def test_zero_version(self):
        assert version_tuple("0.0.0") == (0,)
        assert is_newer_version("0.0.1", "0.0.0")

    @pytest.mark.parametrize("version", ["", "abc", "v", "..."])
    def test_invalid_version(self, version):
        with pytest.raises(InvalidVersionError):
            version_tuple(version)


class TestMigrationRegistry:
    """Test suite for MigrationRegistry."""

    def test_ordered_versions(self):
        registry = registry_of("0.10.0", "0.3.1", "0.9.0", "0.4.1")
        assert registry.get_ordered_versions() == ["0.3.1", "0.4.1", "0.9.0", "0.10.0"]

    def test_pending_range(self):
        registry = registry_of("0.3.1", "0.4.1", "0.6.1")
        pending = registry.get_pending("0.3.0", "0.5.0")
        assert [m.version for m in pending] == ["0.3.1", "0.4.1"]

    def test_pending_includes_target(self):
        registry = registry_of("0.3.1", "0.4.1", "0.6.1")
        pending = registry.get_pending("0.3.1", "0.6.1")
        assert [m.version for m in pending] == ["0.4.1", "0.6.1"]

    def test_pending_same_version_is_empty(self):
        registry = registry_of("0.3.1", "0.4.1")
        assert registry.get_pending("0.4.1", "0.4.1") == []

    def test_pending_no_versions_in_range(self):
        registry = registry_of("0.3.1", "0.6.1")
        assert registry.get_pending("0.4.0", "0.6.0") == []

    def test_pending_uses_numeric_order(self):
        registry = registry_of("0.9.0", "0.10.0", "0.11.0")
        pending = registry.get_pending("0.9.0", "0.10.0")
        assert [m.version for m in pending] == ["0.10.0"]

    def test_duplicate_version_rejected(self):
        registry = registry_of("0.5.0")
        with pytest.raises(ValueError, match="already registered"):
            registry.register("0.5", noop)

    def test_invalid_version_rejected(self):
        registry = MigrationRegistry()
        with pytest.raises(InvalidVersionError):
            registry.register("next", noop)
        assert len(registry) == 0

    def test_register_and_get(self):
        registry = MigrationRegistry()
        migration = registry.register("1.0.0", noop, "First release")
        assert "1.0.0" in registry
        assert registry.get("1.0.0") is migration
        assert migration.description == "First release"
        assert registry.get("2.0.0") is None


class TestDefaultRegistry:
    """Test suite for the module's registered migrations."""

    def test_default_versions(self, storage):
        registry = build_default_registry(storage)
        assert registry.get_ordered_versions() == ["0.3.1", "0.5.0", "0.6.1"]

    def test_every_migration_described(self, storage):
        registry = build_default_registry(storage)
        for version in registry.get_ordered_versions():
            assert registry.get(version).description
