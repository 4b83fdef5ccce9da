"""
repokit - repository pattern over composable SQLAlchemy query scopes.
"""

from repokit.config.exceptions import ConfigurationError, RepokitError, UnknownScopeError
from repokit.models.repository_config import RepositoryConfig, TimestampColumns, TimestampEvent
from repokit.query.scope import CompiledQuery, Scope
from repokit.repositories.base_repository import Repository
from repokit.repositories.scope_registry import ScopeRegistry

__version__ = "0.1.0"

__all__ = [
    "CompiledQuery",
    "ConfigurationError",
    "RepokitError",
    "Repository",
    "RepositoryConfig",
    "Scope",
    "ScopeRegistry",
    "TimestampColumns",
    "TimestampEvent",
    "UnknownScopeError",
]
