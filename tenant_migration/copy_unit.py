"""
Copy units: one source table copied into the target.

A unit fetches the tenant's rows (tenant query, keyed fetch or filtered
scan), registers the IDs later units need, and writes the rows in batches.
Units never raise: the outcome, including the error, is returned as a
CopyResult so that a whole stage can settle before the pipeline decides
what to do.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from tenant_migration.batch_writer import InsertTemplate, write_rows
from tenant_migration.config import BATCH_SIZE
from tenant_migration.key_registry import KeyRegistry, MigrationContext

Row = Dict[str, Any]


class UnitState(Enum):
    PENDING = 'pending'
    FETCHING = 'fetching'
    FILTERING = 'filtering'
    WRITING = 'writing'
    DONE = 'done'
    FAILED = 'failed'


@dataclass(frozen=True)
class KeyProducer:
    """Register the values of one column, optionally only for some rows."""

    key: str
    column: str
    where: Optional[Callable[[Row], bool]] = None

    def values(self, rows: List[Row]) -> List[Any]:
        return [
            row.get(self.column)
            for row in rows
            if self.where is None or self.where(row)
        ]


def produces(key: str, column: str, where: Callable[[Row], bool] = None) -> KeyProducer:
    return KeyProducer(key, column, where)


def id_prefix(column: str, prefix: str) -> Callable[[Row], bool]:
    """Row test for principal-style IDs: 'u:cam:abc' is a user, 'g:cam:abc' a group."""
    def check(row: Row) -> bool:
        value = row.get(column)
        return isinstance(value, str) and value.startswith(prefix)
    return check


@dataclass
class CopyResult:
    """Outcome of one copy unit."""

    unit: str
    table: str
    state: UnitState = UnitState.PENDING
    rows_fetched: int = 0
    rows_scanned: int = 0
    rows_written: int = 0
    batches: int = 0
    skipped: bool = False
    error: Optional[Exception] = None
    started_at: float = 0.0
    finished_at: float = 0.0

    @property
    def ok(self) -> bool:
        return self.state is UnitState.DONE

    @property
    def duration(self) -> float:
        return self.finished_at - self.started_at


@dataclass(frozen=True)
class CopyUnit:
    """
    Immutable description of one table copy.

    Args:
        name: Unit name, used in logs, the state file and errors
        fetcher: TenantQuery, KeyedFetch or ScanFilter
        insert: Insert template for the target table
        producers: Registry entries filled from the fetched rows
        verify: Compare source and target counts after the run
    """

    name: str
    fetcher: Any
    insert: InsertTemplate
    producers: Tuple[KeyProducer, ...] = field(default_factory=tuple)
    verify: bool = False

    @property
    def table(self) -> str:
        return self.insert.table

    @property
    def reads(self) -> Tuple[str, ...]:
        return tuple(self.fetcher.reads)

    @property
    def writes(self) -> Tuple[str, ...]:
        return tuple(producer.key for producer in self.producers)

    def register_keys(self, rows: List[Row], registry: KeyRegistry):
        """Register every produced key, even when there were no rows."""
        for producer in self.producers:
            registry.set(producer.key, producer.values(rows))

    async def run(self, source, target, context: MigrationContext,
                  batch_size: int = BATCH_SIZE) -> CopyResult:
        result = CopyResult(unit=self.name, table=self.table)
        result.started_at = time.monotonic()

        try:
            result.state = UnitState.FETCHING
            fetched = await self.fetcher.fetch(source, context)
            result.rows_fetched = len(fetched.rows)
            result.rows_scanned = fetched.scanned
            result.skipped = fetched.skipped

            if fetched.filtered:
                result.state = UnitState.FILTERING
            self.register_keys(fetched.rows, context.registry)

            result.state = UnitState.WRITING
            stats = await write_rows(target, self.insert, fetched.rows, batch_size)
            result.rows_written = stats.rows
            result.batches = stats.batches

            result.state = UnitState.DONE
        except Exception as e:
            result.state = UnitState.FAILED
            result.error = e
            print(f"    ❌ Error copying '{self.name}': {e}")
        finally:
            result.finished_at = time.monotonic()

        return result
