"""Tests for tenant_migration.key_registry."""

from tenant_migration.key_registry import (
    CONTENT_IDS,
    DISCUSSION_IDS,
    RESOURCE_IDS,
    TENANT_PRINCIPAL_IDS,
    KeyRegistry,
    MigrationContext,
    unique,
)


class TestUnique:
    def test_keeps_first_seen_order(self):
        assert unique(['b', 'a', 'b', 'c', 'a']) == ['b', 'a', 'c']

    def test_drops_empty_values(self):
        assert unique(['a', None, '', 'b']) == ['a', 'b']


class TestKeyRegistry:
    """Set/get semantics of the run-scoped ID sets."""

    def test_get_unknown_key_is_empty(self):
        registry = KeyRegistry()
        assert registry.get(RESOURCE_IDS) == []
        assert registry.is_empty(RESOURCE_IDS)
        assert not registry.is_set(RESOURCE_IDS)

    def test_set_deduplicates(self):
        registry = KeyRegistry()
        registry.set(TENANT_PRINCIPAL_IDS, ['u:cam:a', 'u:cam:b', 'u:cam:a'])
        assert registry.get(TENANT_PRINCIPAL_IDS) == ['u:cam:a', 'u:cam:b']

    def test_set_empty_marks_key_as_produced(self):
        registry = KeyRegistry()
        registry.set(RESOURCE_IDS, [])
        assert registry.is_set(RESOURCE_IDS)
        assert registry.is_empty(RESOURCE_IDS)
        assert RESOURCE_IDS in registry

    def test_set_overwrites(self):
        registry = KeyRegistry()
        registry.set(RESOURCE_IDS, ['c:cam:1'])
        registry.set(RESOURCE_IDS, ['c:cam:2'])
        assert registry.get(RESOURCE_IDS) == ['c:cam:2']

    def test_get_returns_a_copy(self):
        registry = KeyRegistry()
        registry.set(RESOURCE_IDS, ['c:cam:1'])
        registry.get(RESOURCE_IDS).append('c:cam:2')
        assert registry.get(RESOURCE_IDS) == ['c:cam:1']

    def test_union_across_keys(self):
        registry = KeyRegistry()
        registry.set(CONTENT_IDS, ['c:cam:1', 'c:cam:2'])
        registry.set(DISCUSSION_IDS, ['d:cam:1'])
        registry.set(RESOURCE_IDS, ['c:cam:1', 'd:cam:1', 'f:cam:1'])

        union = registry.union(CONTENT_IDS, DISCUSSION_IDS, RESOURCE_IDS)

        assert union == ['c:cam:1', 'c:cam:2', 'd:cam:1', 'f:cam:1']

    def test_sizes(self):
        registry = KeyRegistry()
        registry.set(CONTENT_IDS, ['c:cam:1', 'c:cam:2'])
        registry.set(RESOURCE_IDS, [])
        assert registry.sizes() == {CONTENT_IDS: 2, RESOURCE_IDS: 0}


def test_context_starts_with_empty_registry():
    first = MigrationContext('cam')
    second = MigrationContext('cam')
    first.registry.set(RESOURCE_IDS, ['c:cam:1'])

    assert first.tenant_alias == 'cam'
    assert second.registry.is_empty(RESOURCE_IDS)
