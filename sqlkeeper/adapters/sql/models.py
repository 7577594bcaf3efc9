"""SQLAlchemy schema for key records.

The table name is chosen per locator, so tables are built on demand from
one column layout rather than declared once.
"""
from sqlalchemy import BigInteger, Column, Index, Integer, MetaData, Table, Text

from sqlkeeper.domain.keys.models import DEFAULT_TABLE


def secret_key_table(name: str = DEFAULT_TABLE, metadata: MetaData | None = None) -> Table:
    """Key record table: id (caller supplied), key (wrapped key JSON), created_unix."""
    metadata = metadata if metadata is not None else MetaData()
    table = Table(
        name,
        metadata,
        # SQLite INTEGER PRIMARY KEY is already 64-bit. Ids are always supplied on insert.
        Column("id", BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),
        Column("key", Text, nullable=True),
        Column("created_unix", BigInteger, nullable=True),
    )
    Index(f"IDX_{name}_created_unix", table.c.created_unix)
    return table
