"""
Base repository pattern over composable query scopes.

A ``Repository`` wraps one ``Scope`` and offers CRUD helpers on top of it.
Refining a repository (``all``, ``scoped``, ``named``) never changes it;
a new repository around the refined scope is returned instead, so
repositories can be shared freely between coroutines.
"""

from typing import Any, Awaitable, Mapping, Optional, Sequence

from repokit.config.exceptions import ConfigurationError
from repokit.models.repository_config import RepositoryConfig, TimestampEvent
from repokit.query.scope import CompiledQuery, DatabaseHandle, Scope
from repokit.repositories.scope_registry import ScopeFunction
from repokit.utils.logger import get_logger
from repokit.utils.sql import quote as quote_sql
from repokit.utils.timestamp import with_timestamps

logger = get_logger(__name__)


class Repository:
    """
    Table repository with scoped queries, timestamps and entity hydration.

    Example:
        config = RepositoryConfig(table_name="orders").with_scopes({
            "for_client": lambda scope, client_id: scope.where("client_id", client_id),
        })
        orders = Repository(engine, config)

        order = await orders.create({"client_id": 7})
        recent = await orders.named("for_client", 7).execute()

    Sharing one transaction between repositories:
        async with engine.begin() as conn:
            order = await orders.transacting(conn).create(fields)
            await clients.transacting(conn).update(order["client_id"], {"last_order_id": order["id"]})
    """

    def __init__(
        self,
        db: DatabaseHandle,
        config: Optional[RepositoryConfig] = None,
        *,
        table_name: Optional[str] = None,
        scope: Optional[Scope] = None,
    ):
        """
        Initialize repository.

        Args:
            db: Async engine, or a connection to run inside an open transaction
            config: Repository configuration (defaults apply when omitted)
            table_name: Overrides the configured table name
            scope: Starting scope; defaults to every row of the table

        Raises:
            ConfigurationError: If neither a scope nor a table name is available
        """
        if config is None:
            config = RepositoryConfig()
        if table_name:
            config = config.with_table(table_name)

        if scope is None:
            if not config.table_name:
                raise ConfigurationError(f"{type(self).__name__} needs a table name or a scope")
            scope = Scope(db, config.table_name)

        self.db = db
        self.config = config
        self._registry = config.registry()
        self._scope = scope

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._scope!r}>"

    @property
    def table_name(self) -> str:
        return self.config.table_name or self._scope.table_name

    # ── SCOPES ────────────────────────────────────────────

    def scope(self) -> Scope:
        """Copy of the current scope, safe to refine."""
        return self._scope.clone()

    def scoped(self, fn: Optional[ScopeFunction] = None, *args: Any, **kwargs: Any) -> "Repository":
        """
        Derive a repository whose scope is ``fn`` applied to a copy of this one.

        Args:
            fn: ``(scope, *args, **kwargs) -> Scope``; ``None`` keeps the scope as is
            *args: Positional arguments passed to ``fn``
            **kwargs: Keyword arguments passed to ``fn``

        Returns:
            New repository sharing this repository's handle and configuration
        """
        scope = self.scope()
        if fn is not None:
            scope = fn(scope, *args, **kwargs)
        return type(self)(self.db, self.config, scope=scope)

    def named(self, name: str, *args: Any, **kwargs: Any) -> "Repository":
        """
        Apply a named scope from the configuration.

        Raises:
            UnknownScopeError: If no scope with that name was registered
        """
        return self.scoped(self._registry.get(name), *args, **kwargs)

    def transacting(self, db: DatabaseHandle) -> "Repository":
        """Same repository bound to another handle (usually an open transaction), unscoped."""
        return type(self)(db, self.config, table_name=self.table_name)

    def all(self, conditions: Optional[Mapping[str, Any]] = None) -> "Repository":
        """Repository narrowed to rows matching ``conditions`` (every row when omitted)."""
        if conditions is None:
            return self.scoped()
        return self.scoped(lambda scope: scope.where(conditions))

    # ── READ ──────────────────────────────────────────────

    async def execute(self) -> list[Any]:
        """Run the current scope and return its hydrated rows."""
        return await self.fetch(self._scope.execute())

    async def first(self, conditions: Optional[Mapping[str, Any]] = None) -> Optional[Any]:
        """
        Fetch a single row.

        Args:
            conditions: Column filters; every row is eligible when omitted

        Returns:
            Hydrated row or None when nothing matches
        """
        return await self.fetch_one(self.scope().where(conditions or {}).limit(1).execute())

    async def count(self, expression: str = "*") -> int:
        """Count rows of the current scope."""
        rows = await self.scope().count(expression).execute()
        return int(rows[0]["count"])

    # ── WRITE ─────────────────────────────────────────────

    async def create(self, fields: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Insert a row.

        Timestamp columns are filled in unless ``fields`` already provides them.

        Returns:
            The inserted row as stored, hydrated
        """
        fields = self.update_timestamps(fields, TimestampEvent.CREATED_AT, TimestampEvent.UPDATED_AT)
        record = await self.fetch_one(self.scope().insert(fields).returning("*").execute())
        logger.debug(f"Created record in '{self.table_name}'")
        return record

    async def update(self, pk: Any, fields: Optional[Mapping[str, Any]] = None) -> Optional[Any]:
        """
        Update the row identified by ``pk``.

        Args:
            pk: Primary key value, or sequence of values for a composite key
            fields: Columns to change

        Returns:
            The last row reported by the database as updated, hydrated,
            or None when no row matched
        """
        scope = self._update_scope(self.pk_conditions(pk), fields).returning("*")
        record = await self.fetch_one(scope.execute())
        logger.debug(f"Updated record {pk!r} in '{self.table_name}'")
        return record

    async def update_all(
        self,
        conditions: Optional[Mapping[str, Any]] = None,
        fields: Optional[Mapping[str, Any]] = None,
    ) -> int:
        """
        Update every row matching ``conditions``.

        Called with a single mapping, that mapping is the set of fields and
        every row of the scope is updated.

        Returns:
            Number of rows updated
        """
        if fields is None:
            fields, conditions = conditions, None

        return await self._update_scope(conditions, fields).execute()

    async def destroy(self, pk: Any) -> Optional[Any]:
        """
        Delete the row identified by ``pk``.

        Returns:
            The deleted row as it was before deletion, hydrated,
            or None when no row matched
        """
        scope = self._destroy_scope(self.pk_conditions(pk)).returning("*")
        record = await self.fetch_one(scope.execute())
        logger.debug(f"Deleted record {pk!r} from '{self.table_name}'")
        return record

    async def destroy_all(self, conditions: Optional[Mapping[str, Any]] = None) -> int:
        """Delete rows matching ``conditions`` (all rows of the scope when omitted)."""
        return await self._destroy_scope(conditions).execute()

    def _update_scope(self, conditions: Optional[Mapping[str, Any]], fields: Optional[Mapping[str, Any]]) -> Scope:
        fields = self.update_timestamps(fields, TimestampEvent.UPDATED_AT)
        return self.scope().where(conditions or {}).update(fields)

    def _destroy_scope(self, conditions: Optional[Mapping[str, Any]]) -> Scope:
        return self.scope().where(conditions or {}).delete()

    # ── HELPERS ───────────────────────────────────────────

    def pk_conditions(self, pk: Any) -> dict[str, Any]:
        """
        Build the where-conditions that select one primary key.

        Raises:
            ValueError: If a composite key gets the wrong number of values
        """
        if not self.config.is_composite_pk:
            return {self.config.pk: pk}

        columns = self.config.pk_columns
        if isinstance(pk, (str, bytes)) or not isinstance(pk, Sequence) or len(pk) != len(columns):
            raise ValueError(f"Primary key {columns} needs {len(columns)} values, got {pk!r}")

        return dict(zip(columns, pk))

    async def fetch(self, pending: Awaitable[Any]) -> Any:
        """Await ``pending`` and hydrate it when it is a list of rows."""
        result = await pending
        entity_class = self.config.entity_class

        if not isinstance(result, list) or entity_class is None:
            return result

        return [entity_class(**row) for row in result]

    async def fetch_one(self, pending: Awaitable[Any]) -> Optional[Any]:
        """
        Await ``pending`` and return the LAST hydrated row, or None.

        Writes with ``RETURNING`` report the affected row last, which is why
        the final element is taken rather than the first.
        """
        rows = await self.fetch(pending)
        if not rows:
            return None
        return rows[-1]

    def update_timestamps(self, fields: Optional[Mapping[str, Any]], *events: TimestampEvent) -> dict[str, Any]:
        """
        Return a copy of ``fields`` with the given timestamp events stamped.

        Values supplied by the caller are kept; with timestamps disabled the
        copy is returned unchanged.
        """
        timestamps = self.config.timestamps
        if not timestamps:
            return dict(fields or {})

        return with_timestamps(fields, [timestamps.column_for(event) for event in events])

    quote = staticmethod(quote_sql)

    def to_sql(self) -> CompiledQuery:
        """Compiled SQL of the current scope, for diagnostics."""
        return self._scope.to_sql()
