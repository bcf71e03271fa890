"""Tests for tenant_migration.schema."""

from tenant_migration.schema import (
    CREATE_INDEX_STATEMENTS,
    CREATE_TABLE_STATEMENTS,
    list_tables,
    make_sure_tables_exist,
)
from tenant_migration.tables import all_units


class TestSchema:
    def test_every_copied_table_has_a_create_statement(self):
        created = {statement.split('"')[1] for statement in CREATE_TABLE_STATEMENTS}
        assert {unit.table for unit in all_units()} <= created

    def test_statements_are_idempotent(self):
        for statement in CREATE_TABLE_STATEMENTS + CREATE_INDEX_STATEMENTS:
            assert 'IF NOT EXISTS' in statement

    def test_insert_columns_exist_in_table_definition(self):
        definitions = {statement.split('"')[1]: statement for statement in CREATE_TABLE_STATEMENTS}
        for unit in all_units():
            for column in unit.insert.columns:
                assert f'"{column}"' in definitions[unit.table], (unit.table, column)

    async def test_bootstrap_creates_tables_then_index(self, target):
        await make_sure_tables_exist(target)

        assert target.ddl[:len(CREATE_TABLE_STATEMENTS)] == CREATE_TABLE_STATEMENTS
        assert target.ddl[-1] == CREATE_INDEX_STATEMENTS[-1]

    async def test_bootstrap_twice_gives_same_schema(self, target):
        await make_sure_tables_exist(target)
        first = await list_tables(target)

        await make_sure_tables_exist(target)
        second = await list_tables(target)

        assert first == second
        assert len(first) == len(CREATE_TABLE_STATEMENTS)
        assert target.ddl == (CREATE_TABLE_STATEMENTS + CREATE_INDEX_STATEMENTS) * 2
