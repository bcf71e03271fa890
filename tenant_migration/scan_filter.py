"""
Full-table scans for tables that have no tenant index.

The source is shared by every tenant, so a scan of Folders or Etherpad
walks the rows of all of them. Rows are streamed page by page and the ones
that do not belong to the tenant are dropped as soon as they are seen;
only matching rows are kept in memory.

A predicate factory returns a function that takes the MigrationContext
and returns the actual row test. The test is built once per scan, so ID
sets are turned into Python sets once and not per row.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple

from tenant_migration.key_registry import (
    ETHERPAD_GROUP_IDS,
    ETHERPAD_PAD_IDS,
    MigrationContext,
    unique,
)
from tenant_migration.keyed_fetcher import FetchResult

Row = Dict[str, Any]
RowTest = Callable[[Row], bool]
Predicate = Callable[[MigrationContext], RowTest]


def tenant_alias_equals(column: str = 'tenantAlias') -> Predicate:
    """Keep rows whose column holds the tenant alias."""
    def bind(context: MigrationContext) -> RowTest:
        alias = context.tenant_alias
        return lambda row: row.get(column) == alias
    return bind


def key_segment_equals(column: str, position: int, separator: str = ':') -> Predicate:
    """
    Keep rows whose colon-delimited key has the tenant alias at a fixed
    segment, e.g. position 1 of 'd:cam:abc' or position 2 of
    'c:cam:abc#library'.
    """
    def bind(context: MigrationContext) -> RowTest:
        alias = context.tenant_alias

        def test(row: Row) -> bool:
            value = row.get(column)
            if not isinstance(value, str):
                return False
            segments = value.split(separator)
            return len(segments) > position and segments[position] == alias
        return test
    return bind


def member_of(column: str, *keys: str) -> Predicate:
    """Keep rows whose column value was registered under one of the keys."""
    def bind(context: MigrationContext) -> RowTest:
        ids = set(context.registry.union(*keys))
        return lambda row: row.get(column) in ids
    bind.reads = keys
    return bind


def external_membership(resource_key: str, member_key: str,
                        resource_column: str = 'resourceId',
                        member_column: str = 'memberId') -> Predicate:
    """Keep rows whose resource belongs to the tenant and whose member does not."""
    owned = member_of(resource_column, resource_key)
    internal = member_of(member_column, member_key)

    def bind(context: MigrationContext) -> RowTest:
        is_owned = owned(context)
        is_internal = internal(context)
        return lambda row: is_owned(row) and not is_internal(row)
    bind.reads = (resource_key, member_key)
    return bind


class ScanFilter:
    """Stream a whole table and keep the rows that pass the predicate."""

    def __init__(self, table: str, predicate: Optional[Predicate]):
        self.table = table
        self.predicate = predicate

    def __repr__(self):
        return f"{type(self).__name__}({self.table!r})"

    @property
    def reads(self) -> Tuple[str, ...]:
        return tuple(getattr(self.predicate, 'reads', ()))

    @property
    def query(self) -> str:
        return f'SELECT * FROM "{self.table}"'

    async def fetch(self, connection, context: MigrationContext) -> FetchResult:
        test = self.predicate(context)
        matched = []
        scanned = 0

        async for row in connection.stream(self.query, table=self.table):
            scanned += 1
            if test(row):
                matched.append(row)

        print(f"    ✓ Scanned {scanned} {self.table} rows, "
              f"{len(matched)} belong to tenant '{context.tenant_alias}'")
        return FetchResult(rows=matched, scanned=scanned, filtered=True)


class EtherpadScan(ScanFilter):
    """
    Etherpad keeps its whole key/value store in one table. A tenant owns:

      mapper2group:<resourceId>  resource segment 2 is the tenant alias
      mapper2author:<userId>     user segment 2 is the tenant alias
      pad:<padId>[:...]          pad registered by the tenant's content
      group:<groupId>[:...]      group registered by the tenant's content
      globalAuthor:<authorId>    author referenced by a kept mapper2author row

    Author records can appear before the mapping that points at them, so
    only their keys are collected during the scan. The authors themselves
    are read by key once the scan is over.
    """

    def __init__(self, table: str = 'Etherpad'):
        super().__init__(table, predicate=None)

    @property
    def reads(self) -> Tuple[str, ...]:
        return (ETHERPAD_PAD_IDS, ETHERPAD_GROUP_IDS)

    async def fetch(self, connection, context: MigrationContext) -> FetchResult:
        alias = context.tenant_alias
        pad_ids = set(context.registry.get(ETHERPAD_PAD_IDS))
        group_ids = set(context.registry.get(ETHERPAD_GROUP_IDS))

        matched = []
        author_keys = []
        scanned = 0

        async for row in connection.stream(self.query, table=self.table):
            scanned += 1
            key = row.get('key') or ''

            if key.startswith('mapper2group:') or key.startswith('mapper2author:'):
                segments = key.split(':')
                if len(segments) > 2 and segments[2] == alias:
                    matched.append(row)
                    if key.startswith('mapper2author:') and row.get('data'):
                        # data is a JSON string: "a.xyz"
                        author_keys.append('globalAuthor:' + row['data'][1:-1])
            elif key.startswith('pad:'):
                if key[len('pad:'):].split(':')[0] in pad_ids:
                    matched.append(row)
            elif key.startswith('group:'):
                if key.split(':')[1] in group_ids:
                    matched.append(row)

        matched.extend(await self.fetch_authors(connection, unique(author_keys)))

        print(f"    ✓ Scanned {scanned} {self.table} rows, "
              f"{len(matched)} belong to tenant '{alias}'")
        return FetchResult(rows=matched, scanned=scanned, filtered=True)

    async def fetch_authors(self, connection, author_keys: List[str]) -> List[Row]:
        """Read the referenced globalAuthor rows; key is the partition key."""
        if not author_keys:
            return []
        return await connection.execute(
            f'SELECT * FROM "{self.table}" WHERE "key" IN ?', [author_keys], table=self.table
        )
