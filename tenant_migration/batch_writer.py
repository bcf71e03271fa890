"""Batched inserts into the target keyspace."""

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from tenant_migration.config import BATCH_SIZE
from tenant_migration.errors import BatchWriteError, ConnectivityError, SchemaMissingError


@dataclass(frozen=True)
class InsertTemplate:
    """A parameterised INSERT for one table and its column order."""

    table: str
    columns: Tuple[str, ...]

    @property
    def query(self) -> str:
        # Columns are camelCase (and 'admin:global'), so they are always quoted
        column_list = ', '.join(f'"{column}"' for column in self.columns)
        placeholders = ', '.join(['?'] * len(self.columns))
        return f'INSERT INTO "{self.table}" ({column_list}) VALUES ({placeholders})'

    def bind(self, row: Dict[str, Any]) -> List[Any]:
        return [row.get(column) for column in self.columns]


@dataclass
class WriteStats:
    rows: int = 0
    batches: int = 0


async def write_rows(connection, template: InsertTemplate, rows: List[Dict[str, Any]],
                     batch_size: int = BATCH_SIZE) -> WriteStats:
    """
    Insert rows into the target as LOGGED batches of at most batch_size.

    Args:
        connection: Target connection
        template: Insert template for the table
        rows: Rows fetched from the source
        batch_size: Maximum statements per batch

    Returns:
        WriteStats with the number of rows and batches written

    Raises:
        BatchWriteError: A batch failed; none of its rows count as written
        SchemaMissingError: The table does not exist on the target
        ConnectivityError: The target cannot be reached
    """
    stats = WriteStats()

    if not rows:
        print(f"    ℹ No data to migrate for '{template.table}' (0 rows)")
        return stats

    for offset in range(0, len(rows), batch_size):
        chunk = rows[offset:offset + batch_size]
        batch_number = stats.batches + 1

        try:
            await connection.execute_batch(
                template.table,
                template.query,
                [template.bind(row) for row in chunk]
            )
        except (SchemaMissingError, ConnectivityError):
            raise
        except Exception as e:
            raise BatchWriteError(template.table, batch_number, len(chunk), e) from e

        stats.batches = batch_number
        stats.rows += len(chunk)

    print(f"    ✓ Inserted {stats.rows} rows into {template.table} ({stats.batches} batch(es))")
    return stats
