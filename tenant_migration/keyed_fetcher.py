"""
Fetchers for tables that can be queried directly.

TenantQuery  - tables indexed by tenant alias (Tenant, Config, Principals)
KeyedFetch   - tables reachable by a set of IDs registered earlier in the
               run (roles by principal, revisions by content, ...)

A KeyedFetch whose ID set is empty never reaches the database: an empty
IN list is either invalid CQL or matches nothing, so the result is known.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from tenant_migration.key_registry import MigrationContext

Row = Dict[str, Any]


@dataclass
class FetchResult:
    """Rows a fetcher kept, plus how many it had to look at."""

    rows: List[Row] = field(default_factory=list)
    scanned: int = 0
    skipped: bool = False
    filtered: bool = False


def has_value(column: str) -> Callable[[Row], bool]:
    """Row filter: keep rows where the column is present and not empty."""
    def check(row: Row) -> bool:
        return bool(row.get(column))
    return check


@dataclass(frozen=True)
class TenantQuery:
    """SELECT rows whose tenant column equals the tenant alias."""

    table: str
    column: str = 'tenantAlias'

    @property
    def reads(self) -> Tuple[str, ...]:
        return ()

    @property
    def query(self) -> str:
        return f'SELECT * FROM "{self.table}" WHERE "{self.column}" = ?'

    async def fetch(self, connection, context: MigrationContext) -> FetchResult:
        rows = await connection.execute(self.query, [context.tenant_alias], table=self.table)
        print(f"    ✓ Fetched {len(rows)} {self.table} rows from {getattr(connection, 'host', 'source')}")
        return FetchResult(rows=rows, scanned=len(rows))


@dataclass(frozen=True)
class KeyedFetch:
    """
    SELECT rows whose key column is IN the union of some registry entries.

    Args:
        table: Source table name
        column: Column restricted by the IN list
        keys: Registry entries whose IDs make up the IN list
        allow_filtering: Add ALLOW FILTERING (column is not the partition key)
        row_filter: Optional presence check applied to the fetched rows
    """

    table: str
    column: str
    keys: Tuple[str, ...]
    allow_filtering: bool = False
    row_filter: Optional[Callable[[Row], bool]] = None

    @property
    def reads(self) -> Tuple[str, ...]:
        return self.keys

    @property
    def query(self) -> str:
        query = f'SELECT * FROM "{self.table}" WHERE "{self.column}" IN ?'
        if self.allow_filtering:
            query += ' ALLOW FILTERING'
        return query

    async def fetch(self, connection, context: MigrationContext) -> FetchResult:
        ids = context.registry.union(*self.keys)
        if not ids:
            print(f"    ⊗ Skipped fetching {self.table} rows (no {', '.join(self.keys)})")
            return FetchResult(skipped=True)

        rows = await connection.execute(self.query, [ids], table=self.table)
        scanned = len(rows)

        if self.row_filter is not None:
            rows = [row for row in rows if self.row_filter(row)]

        print(f"    ✓ Fetched {len(rows)} {self.table} rows for {len(ids)} {self.column} value(s)")
        return FetchResult(rows=rows, scanned=scanned, filtered=self.row_filter is not None)
