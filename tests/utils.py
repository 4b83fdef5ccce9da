"""
Test utilities shared by unit and integration tests.

Table models are declared with SQLModel so integration tests can create the
schema through ``create_database_tables``; the matching non-table models are
used as hydration targets.
"""

from datetime import datetime
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from sqlmodel import Field, SQLModel

RECORDS_TABLE = "repokit_records"
MEMBERSHIPS_TABLE = "repokit_memberships"


class RecordRow(SQLModel, table=True):
    """Schema of the records test table."""

    __tablename__ = RECORDS_TABLE

    id: Optional[int] = Field(default=None, primary_key=True)
    name: Optional[str] = Field(default=None, max_length=100)
    updated_at: Optional[datetime] = Field(default=None)
    created_at: Optional[datetime] = Field(default=None)


class MembershipRow(SQLModel, table=True):
    """Schema of a table keyed by (group_id, user_id)."""

    __tablename__ = MEMBERSHIPS_TABLE

    group_id: int = Field(primary_key=True)
    user_id: int = Field(primary_key=True)
    role: Optional[str] = Field(default=None)


class Record(SQLModel):
    """Hydrated record entity."""

    id: Optional[int] = None
    name: Optional[str] = None
    updated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class MockFactory:
    """Factory for database handle mocks."""

    @staticmethod
    def create_connection(dialect_name: str = "sqlite", rows=None, rowcount: int = 0) -> AsyncMock:
        """
        Create an AsyncConnection mock whose execute() returns ``rows``.

        With ``rows`` left as None the result reports ``returns_rows`` False
        and ``rowcount`` instead.
        """
        conn = AsyncMock(spec=AsyncConnection)
        conn.dialect = MockFactory.dialect(dialect_name)

        result = MagicMock()
        result.returns_rows = rows is not None
        result.rowcount = rowcount
        result.mappings.return_value.all.return_value = rows or []
        conn.execute.return_value = result
        return conn

    @staticmethod
    def create_engine(dialect_name: str = "sqlite", rows=None, rowcount: int = 0) -> tuple[MagicMock, AsyncMock]:
        """Create an AsyncEngine mock whose begin() yields a mocked connection."""
        conn = MockFactory.create_connection(dialect_name, rows=rows, rowcount=rowcount)

        engine = MagicMock(spec=AsyncEngine)
        engine.dialect = conn.dialect
        engine.begin.return_value.__aenter__ = AsyncMock(return_value=conn)
        engine.begin.return_value.__aexit__ = AsyncMock(return_value=None)
        return engine, conn

    @staticmethod
    def dialect(name: str = "sqlite"):
        if name == "postgresql":
            return postgresql.dialect()
        if name == "sqlite":
            return sqlite.dialect()
        dialect = MagicMock()
        dialect.name = name
        dialect.identifier_preparer.quote = lambda value: value
        return dialect
