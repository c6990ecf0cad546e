from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import inspect

from crewbase.adapters.sqlalchemy import create_all_tables, mapper_registry, start_mappers
from crewbase.domain.merge.schema import ENTITY_SCHEMAS, LINEAGE_FIELDS

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from crewbase.domain.merge.schema import EntitySchema


def test_start_mappers_is_idempotent() -> None:
    # First invocation happens in the sqlite_engine fixture; calling again should be harmless.
    start_mappers()
    start_mappers()


@pytest.mark.parametrize("schema", list(ENTITY_SCHEMAS.values()), ids=lambda s: s.label)
def test_schema_tables_exist_in_metadata(schema: EntitySchema) -> None:
    tables = mapper_registry.metadata.tables
    columns = tables[schema.table].c

    for name in (*schema.mergeable_fields, *LINEAGE_FIELDS, "id", "updated_at"):
        assert name in columns, f"{schema.table}.{name} missing"
    for name, _ in schema.retire_values:
        assert name in columns

    for dependent in schema.dependents:
        dependent_columns = tables[dependent.table].c
        assert dependent.foreign_key in dependent_columns
        foreign_keys = dependent_columns[dependent.foreign_key].foreign_keys
        assert {fk.column.table.name for fk in foreign_keys} == {schema.table}
        if dependent.name_column is not None:
            assert dependent.name_column in dependent_columns
        if dependent.amount_column is not None:
            assert dependent.amount_column in dependent_columns


def test_migration_matches_metadata(sqlite_engine: Engine) -> None:
    inspector = inspect(sqlite_engine)
    migrated = set(inspector.get_table_names()) - {"alembic_version"}

    assert migrated == set(mapper_registry.metadata.tables)
    for table in mapper_registry.metadata.sorted_tables:
        migrated_columns = {column["name"] for column in inspector.get_columns(table.name)}
        assert migrated_columns == set(table.c.keys()), table.name


def test_audit_lookup_indexes_exist(sqlite_engine: Engine) -> None:
    indexes = {index["name"] for index in inspect(sqlite_engine).get_indexes("entity_merge_audit")}

    assert {"ix_entity_merge_audit_source", "ix_entity_merge_audit_target"} <= indexes


def test_create_all_tables_is_a_no_op_after_migration(sqlite_engine: Engine) -> None:
    create_all_tables(sqlite_engine)

    assert "customers" in inspect(sqlite_engine).get_table_names()
