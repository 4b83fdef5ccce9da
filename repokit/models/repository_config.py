"""
Repository configuration models.

A ``RepositoryConfig`` describes one kind of repository: which table it
reads, how its primary key is shaped, how rows are hydrated, which
timestamp columns are maintained and which named scopes it offers.
Configs are immutable; the ``with_*`` builders return new instances.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from repokit.config.exceptions import ConfigurationError

if TYPE_CHECKING:
    from repokit.repositories.scope_registry import ScopeRegistry


class TimestampEvent(str, Enum):
    """Logical events that can stamp a timestamp column."""

    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


class TimestampColumns(BaseModel):
    """Physical column written for each timestamp event; ``None`` disables the event."""

    model_config = ConfigDict(frozen=True)

    created_at: Optional[str] = Field(default="created_at", description="Column stamped on create")
    updated_at: Optional[str] = Field(default="updated_at", description="Column stamped on create and update")

    def column_for(self, event: Union[TimestampEvent, str]) -> Optional[str]:
        return getattr(self, TimestampEvent(event).value)


class RepositoryConfig(BaseModel):
    """
    Configuration shared by every repository of one kind.

    Example:
        records = (
            RepositoryConfig(table_name="records")
            .with_entity(Record)
            .with_scopes({"named": lambda scope, name: scope.where("name", name)})
        )
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    table_name: Optional[str] = Field(default=None, description="Default table for the repository scope")
    pk: Union[str, tuple[str, ...]] = Field(default="id", description="Primary key column or ordered key columns")
    entity_class: Optional[Callable[..., Any]] = Field(
        default=None,
        description="Called with each row's columns as keyword arguments; rows stay dicts when unset"
    )
    timestamps: Optional[TimestampColumns] = Field(default_factory=TimestampColumns)
    scopes: dict[str, Callable[..., Any]] = Field(default_factory=dict)

    @field_validator('pk', mode='before')
    @classmethod
    def normalize_pk(cls, v: Any) -> Any:
        """Accept lists for composite keys and reject empty declarations."""
        if isinstance(v, list):
            v = tuple(v)
        if isinstance(v, tuple):
            if not v or not all(isinstance(name, str) and name for name in v):
                raise ValueError("Composite primary key must be a non-empty sequence of column names")
            return v
        if not v:
            raise ValueError("Primary key column must be a non-empty string")
        return v

    @field_validator('scopes', mode='after')
    @classmethod
    def validate_scopes(cls, v: dict[str, Callable[..., Any]]) -> dict[str, Callable[..., Any]]:
        from repokit.repositories.scope_registry import ScopeRegistry

        return ScopeRegistry(v).as_dict()

    @property
    def is_composite_pk(self) -> bool:
        return isinstance(self.pk, tuple)

    @property
    def pk_columns(self) -> tuple[str, ...]:
        return self.pk if isinstance(self.pk, tuple) else (self.pk,)

    def registry(self) -> "ScopeRegistry":
        """Named scopes of this config as a lookup table."""
        from repokit.repositories.scope_registry import ScopeRegistry

        return ScopeRegistry(self.scopes)

    # ── BUILDERS ──────────────────────────────────────────

    def _evolve(self, **changes: Any) -> "RepositoryConfig":
        try:
            return type(self)(**{**dict(self), **changes})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid repository configuration: {e}") from e

    def with_table(self, table_name: str) -> "RepositoryConfig":
        return self._evolve(table_name=table_name)

    def with_entity(self, entity_class: Optional[Callable[..., Any]]) -> "RepositoryConfig":
        """Hydrate rows with ``entity_class`` (``None`` returns plain dicts)."""
        return self._evolve(entity_class=entity_class)

    def with_pk(self, pk: Union[str, tuple[str, ...], list[str]]) -> "RepositoryConfig":
        """Set the primary key column, or an ordered sequence of columns for a composite key."""
        return self._evolve(pk=pk)

    def with_scopes(self, scopes: Mapping[str, Callable[..., Any]]) -> "RepositoryConfig":
        """Add named scopes; names already registered are replaced."""
        return self._evolve(scopes={**self.scopes, **scopes})

    def with_timestamps(
        self,
        created_at: Optional[str] = "created_at",
        updated_at: Optional[str] = "updated_at",
    ) -> "RepositoryConfig":
        return self._evolve(timestamps=TimestampColumns(created_at=created_at, updated_at=updated_at))

    def without_timestamps(self) -> "RepositoryConfig":
        return self._evolve(timestamps=None)
