"""Tests for tenant_migration.batch_writer."""

import pytest
from cassandra import InvalidRequest

from conftest import FakeConnection

from tenant_migration.batch_writer import InsertTemplate, write_rows
from tenant_migration.errors import BatchWriteError, SchemaMissingError

ROLES = InsertTemplate('AuthzRoles', ('principalId', 'resourceId', 'role'))


def role_rows(count):
    return [
        {'principalId': 'u:cam:alice', 'resourceId': f'c:cam:{i}', 'role': 'manager'}
        for i in range(count)
    ]


class TestInsertTemplate:
    def test_query_quotes_every_column(self):
        template = InsertTemplate('Principals', ('principalId', 'admin:global'))
        assert template.query == 'INSERT INTO "Principals" ("principalId", "admin:global") VALUES (?, ?)'

    def test_bind_follows_column_order_and_fills_missing(self):
        assert ROLES.bind({'role': 'viewer', 'principalId': 'u:cam:bob'}) == ['u:cam:bob', None, 'viewer']


class TestWriteRows:
    async def test_empty_rows_write_nothing(self, target, capsys):
        stats = await write_rows(target, ROLES, [])

        assert stats.rows == 0
        assert stats.batches == 0
        assert target.batches == []
        assert "No data to migrate for 'AuthzRoles'" in capsys.readouterr().out

    async def test_rows_are_chunked_by_batch_size(self, target):
        stats = await write_rows(target, ROLES, role_rows(120), batch_size=50)

        assert [len(params) for _, _, params in target.batches] == [50, 50, 20]
        assert stats.rows == 120
        assert stats.batches == 3
        assert len(target.tables['AuthzRoles']) == 120

    async def test_values_are_bound_not_interpolated(self, target):
        await write_rows(target, ROLES, [{'principalId': "u:cam:o'brien", 'resourceId': 'c:cam:1', 'role': 'x'}])

        table, template, params = target.batches[0]
        assert "o'brien" not in template
        assert params == [["u:cam:o'brien", 'c:cam:1', 'x']]

    async def test_rewriting_same_rows_is_idempotent(self, target):
        rows = role_rows(3)
        await write_rows(target, ROLES, rows)
        await write_rows(target, ROLES, rows)
        assert len(target.tables['AuthzRoles']) == 3

    async def test_failing_batch_raises_batch_write_error(self):
        connection = FakeConnection(fail_batches={'AuthzRoles': RuntimeError('write timeout')})

        with pytest.raises(BatchWriteError) as excinfo:
            await write_rows(connection, ROLES, role_rows(3))

        assert excinfo.value.table == 'AuthzRoles'
        assert excinfo.value.batch_number == 1
        assert excinfo.value.size == 3
        assert 'AuthzRoles' not in connection.tables

    async def test_schema_missing_passes_through(self):
        connection = FakeConnection(fail_batches={'AuthzRoles': SchemaMissingError('AuthzRoles')})

        with pytest.raises(SchemaMissingError):
            await write_rows(connection, ROLES, role_rows(1))

    async def test_other_driver_errors_are_wrapped(self):
        connection = FakeConnection(fail_batches={'AuthzRoles': InvalidRequest('Batch too large')})

        with pytest.raises(BatchWriteError) as excinfo:
            await write_rows(connection, ROLES, role_rows(1))

        assert isinstance(excinfo.value.cause, InvalidRequest)
