"""
SQLite Schema for wd2sql
========================
Builds the table set for a list of value variants plus the "meta" table.

Tables are created before ingestion. Indices (one per column per table) are
created after all rows are written, because maintaining them during the bulk
insert phase is much slower than building them once at the end.

Tables:
- meta: id, label, description
- one table per value variant (see values.py)
"""

import logging
from typing import Dict, List, Sequence, Type

from sqlalchemy import Column, Integer, MetaData, Table, Text
from sqlalchemy.dialects import sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.schema import CreateTable

from wd2sql.values import VALUE_TYPES, Value

logger = logging.getLogger(__name__)

_preparer = sqlite.dialect().identifier_preparer


def index_name(table: Table, column: Column) -> str:
    return f"{table.name}_{column.name}_index"


def index_statement(table: Table, column: Column) -> str:
    quote = _preparer.quote
    return (
        f"CREATE INDEX {quote(index_name(table, column))} "
        f"ON {quote(table.name)} ({quote(column.name)})"
    )


class Schema:
    """Table definitions for one database"""

    def __init__(self, value_types: Sequence[Type[Value]] = VALUE_TYPES):
        self.metadata = MetaData()

        self.meta = Table(
            'meta',
            self.metadata,
            Column('id', Integer, nullable=False),
            Column('label', Text),
            Column('description', Text),
        )

        self.tables: Dict[Type[Value], Table] = {
            value_type: value_type.build_table(self.metadata)
            for value_type in value_types
        }

    @property
    def all_tables(self) -> List[Table]:
        return [self.meta, *self.tables.values()]

    def table_for(self, value: Value) -> Table:
        return self.tables[type(value)]

    def create_tables(self, connection):
        """Create every table. Errors propagate; without tables there is nothing to load."""
        for table in self.all_tables:
            table.create(connection)

    def create_indices(self, connection) -> List[str]:
        """
        Create one index per column per table.

        Failures are logged and skipped; a partial index set still leaves a
        usable database.

        Returns:
            Names of the indices that could not be created
        """
        failed = []

        for table in self.all_tables:
            for column in table.columns:
                try:
                    connection.exec_driver_sql(index_statement(table, column))
                except SQLAlchemyError as e:
                    logger.error(f"Error creating index {index_name(table, column)}: {e}")
                    failed.append(index_name(table, column))

        return failed

    def table_statements(self) -> List[str]:
        """CREATE TABLE statements as SQLite SQL"""
        dialect = sqlite.dialect()
        return [str(CreateTable(table).compile(dialect=dialect)).strip() for table in self.all_tables]

    def index_statements(self) -> List[str]:
        return [index_statement(table, column) for table in self.all_tables for column in table.columns]
