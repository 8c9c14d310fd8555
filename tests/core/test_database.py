"""
Tests du schéma : les horodatages sont stockés avec fuseau horaire.
"""
import pytest
from sqlalchemy import DateTime
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateTable
from sqlmodel import SQLModel

from marketplace.database import import_models

import_models()


def datetime_columns():
    return [
        (table.name, column)
        for table in SQLModel.metadata.sorted_tables
        for column in table.columns
        if isinstance(column.type, DateTime)
    ]


def test_schema_has_datetime_columns():
    names = {f"{table}.{column.name}" for table, column in datetime_columns()}
    assert {"orders.created_at", "promotions.expiration_date", "deliveries.delivered_at"} <= names


@pytest.mark.parametrize("table_name,column", datetime_columns(), ids=lambda v: getattr(v, "name", v))
def test_datetime_column_is_timezone_aware(table_name, column):
    assert column.type.timezone is True, f"{table_name}.{column.name} sans fuseau horaire"


def test_postgresql_ddl_uses_timestamptz():
    table = SQLModel.metadata.tables["orders"]
    ddl = str(CreateTable(table).compile(dialect=postgresql.dialect()))
    assert "TIMESTAMP WITH TIME ZONE" in ddl
    assert "TIMESTAMP WITHOUT TIME ZONE" not in ddl
