"""
Composable query scopes over a single table.

A ``Scope`` is the query builder value a repository wraps. It is generative
in the same way SQLAlchemy statements are: every refinement returns a new
``Scope`` and leaves the receiver untouched, so a scope can be shared and
refined freely. Nothing touches the database until ``execute()`` is awaited.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Union

from sqlalchemy import and_, column, delete, func, insert, literal, literal_column, not_, select, table, text, update
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from sqlalchemy.sql.expression import ClauseElement

logger = logging.getLogger(__name__)

# Anything a scope can execute against: an engine (one transaction per
# statement) or a connection the caller already holds, e.g. inside begin()
DatabaseHandle = Union[AsyncEngine, AsyncConnection]

_OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "=": lambda col, value: col == value,
    "!=": lambda col, value: col != value,
    "<>": lambda col, value: col != value,
    "<": lambda col, value: col < value,
    "<=": lambda col, value: col <= value,
    ">": lambda col, value: col > value,
    ">=": lambda col, value: col >= value,
    "like": lambda col, value: col.like(value),
    "ilike": lambda col, value: col.ilike(value),
    "in": lambda col, value: col.in_(list(value)),
    "not in": lambda col, value: col.not_in(list(value)),
    "is": lambda col, value: col.is_(value),
    "is not": lambda col, value: col.is_not(value),
}

_OPERATIONS = ("select", "insert", "update", "delete", "count", "truncate")


@dataclass(frozen=True)
class CompiledQuery:
    """SQL text and bound parameters of a scope, for diagnostics."""

    sql: str
    params: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.sql


def _value_type(value: Any) -> Any:
    if isinstance(value, ClauseElement):
        # SQL expressions such as func.now() carry their own type
        return getattr(value, "type", None)
    return literal(value).type


def build_conditions(*args: Any) -> list[ClauseElement]:
    """
    Turn ``where()`` style arguments into SQLAlchemy boolean clauses.

    Accepted forms:
        where({"name": "foo", "deleted_at": None})
        where("name", "foo")
        where("age", ">=", 18)
        where(column("age") > 18)

    Raises:
        ValueError: Unsupported comparison operator
        TypeError: Wrong number or type of arguments
    """
    if len(args) == 1:
        criteria = args[0]
        if criteria is None:
            return []
        if isinstance(criteria, Mapping):
            return [column(name) == value for name, value in criteria.items()]
        if isinstance(criteria, ClauseElement):
            return [criteria]
        raise TypeError(f"Unsupported where() criteria: {type(criteria).__name__}")

    if len(args) == 2:
        name, value = args
        return [column(name) == value]

    if len(args) == 3:
        name, operator, value = args
        apply = _OPERATORS.get(str(operator).lower())
        if apply is None:
            raise ValueError(f"Unsupported operator: {operator}")
        return [apply(column(name), value)]

    raise TypeError(f"where() takes 1 to 3 arguments ({len(args)} given)")


class Scope:
    """
    Lazily built query over one table, bound to a database handle.

    The pending operation defaults to ``select``; ``insert``, ``update``,
    ``delete``, ``count`` and ``truncate`` switch it while keeping the
    accumulated where-clauses, so a refined scope can be turned into a
    targeted write.
    """

    def __init__(self, db: DatabaseHandle, table_name: str):
        self.db = db
        self.table_name = table_name
        self._operation = "select"
        self._wheres: tuple[ClauseElement, ...] = ()
        self._order: tuple[ClauseElement, ...] = ()
        self._columns: tuple[str, ...] = ()
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None
        self._values: dict[str, Any] = {}
        self._returning: tuple[str, ...] = ()
        self._count_expression = "*"

    def __repr__(self) -> str:
        return f"<Scope {self._operation} {self.table_name!r} wheres={len(self._wheres)}>"

    @property
    def operation(self) -> str:
        """Pending operation of this scope."""
        return self._operation

    def clone(self) -> "Scope":
        """Return an independent copy that can be refined without affecting this one."""
        # Attributes are only ever replaced, never mutated, so a shallow copy is enough
        return copy.copy(self)

    def _with(self, **changes: Any) -> "Scope":
        scope = self.clone()
        for name, value in changes.items():
            setattr(scope, f"_{name}", value)
        return scope

    # ── REFINEMENTS ───────────────────────────────────────

    def where(self, *args: Any) -> "Scope":
        """AND the given conditions onto the scope. See ``build_conditions``."""
        return self._with(wheres=self._wheres + tuple(build_conditions(*args)))

    def where_in(self, name: str, values: Any) -> "Scope":
        return self._with(wheres=self._wheres + (column(name).in_(list(values)),))

    def where_not(self, *args: Any) -> "Scope":
        clauses = build_conditions(*args)
        if not clauses:
            return self.clone()
        return self._with(wheres=self._wheres + (not_(and_(*clauses)),))

    def order_by(self, name: str, direction: str = "asc") -> "Scope":
        direction = direction.lower()
        if direction not in ("asc", "desc"):
            raise ValueError(f"Unsupported order direction: {direction}")
        clause = column(name).asc() if direction == "asc" else column(name).desc()
        return self._with(order=self._order + (clause,))

    def limit(self, count: int) -> "Scope":
        return self._with(limit=count)

    def offset(self, count: int) -> "Scope":
        return self._with(offset=count)

    def select(self, *names: str) -> "Scope":
        """Restrict the selected columns; no arguments selects every column."""
        return self._with(operation="select", columns=tuple(names))

    def insert(self, fields: Optional[Mapping[str, Any]] = None) -> "Scope":
        return self._with(operation="insert", values=dict(fields or {}))

    def update(self, fields: Mapping[str, Any]) -> "Scope":
        return self._with(operation="update", values=dict(fields))

    def delete(self) -> "Scope":
        return self._with(operation="delete")

    def count(self, expression: str = "*") -> "Scope":
        return self._with(operation="count", count_expression=expression)

    def truncate(self) -> "Scope":
        return self._with(operation="truncate")

    def returning(self, *names: str) -> "Scope":
        """Ask insert/update/delete to return columns; ``"*"`` returns all of them."""
        return self._with(returning=tuple(names) or ("*",))

    # ── COMPILATION ───────────────────────────────────────

    def statement(self) -> Any:
        """Build the SQLAlchemy Core statement for the pending operation."""
        if self._operation not in _OPERATIONS:
            raise ValueError(f"Unsupported operation: {self._operation}")
        return getattr(self, f"_build_{self._operation}")()

    def to_sql(self) -> CompiledQuery:
        """Compile the pending statement against the handle's dialect."""
        compiled = self.statement().compile(dialect=self.db.dialect)
        return CompiledQuery(sql=str(compiled), params=dict(compiled.params))

    def _table(self, values: Optional[Mapping[str, Any]] = None) -> Any:
        # Column types follow the written values so the driver gets proper bind processing
        columns = [column(name, _value_type(value)) for name, value in (values or {}).items()]
        return table(self.table_name, *columns)

    def _filtered(self, statement: Any) -> Any:
        if self._wheres:
            statement = statement.where(*self._wheres)
        return statement

    def _returned(self, statement: Any) -> Any:
        if not self._returning:
            return statement
        columns = [literal_column("*") if name == "*" else column(name) for name in self._returning]
        return statement.returning(*columns)

    def _build_select(self) -> Any:
        columns = [column(name) for name in self._columns] or [literal_column("*")]
        statement = self._filtered(select(*columns).select_from(self._table()))
        if self._order:
            statement = statement.order_by(*self._order)
        if self._limit is not None:
            statement = statement.limit(self._limit)
        if self._offset is not None:
            statement = statement.offset(self._offset)
        return statement

    def _build_count(self) -> Any:
        counted = func.count(literal_column(self._count_expression)).label("count")
        if self._limit is None and self._offset is None:
            return self._filtered(select(counted).select_from(self._table()))
        # Limits must apply before counting
        window = self._with(operation="select", order=()).statement().subquery()
        return select(counted).select_from(window)

    def _build_insert(self) -> Any:
        statement = insert(self._table(self._values))
        if self._values:
            statement = statement.values(self._values)
        return self._returned(statement)

    def _build_update(self) -> Any:
        statement = update(self._table(self._values)).values(self._values)
        return self._returned(self._filtered(statement))

    def _build_delete(self) -> Any:
        return self._returned(self._filtered(delete(self._table())))

    def _build_truncate(self) -> Any:
        dialect = self.db.dialect
        name = dialect.identifier_preparer.quote(self.table_name)
        if dialect.name == "sqlite":
            return text(f"DELETE FROM {name}")
        if dialect.name == "postgresql":
            return text(f"TRUNCATE {name} RESTART IDENTITY")
        return text(f"TRUNCATE TABLE {name}")

    # ── EXECUTION ─────────────────────────────────────────

    async def execute(self) -> Union[list[dict[str, Any]], int]:
        """
        Run the pending statement.

        Returns:
            List of row dictionaries for row-returning statements,
            otherwise the affected row count reported by the driver

        Raises:
            SQLAlchemyError: Propagated unchanged from the driver
        """
        statement = self.statement()
        logger.debug(f"Executing {self._operation} on '{self.table_name}'")

        try:
            if isinstance(self.db, AsyncConnection):
                return await self._run(self.db, statement)
            async with self.db.begin() as conn:
                return await self._run(conn, statement)
        except Exception as e:
            logger.error(f"Failed to execute {self._operation} on '{self.table_name}': {str(e)}")
            raise

    @staticmethod
    async def _run(conn: AsyncConnection, statement: Any) -> Union[list[dict[str, Any]], int]:
        result = await conn.execute(statement)
        if result.returns_rows:
            return [dict(row) for row in result.mappings().all()]
        return result.rowcount
