"""
Named scope registry.

Named scopes are reusable query refinements declared once per repository
configuration and resolved by name at call time.
"""

from typing import Any, Callable, Iterator, Mapping, Optional

from repokit.config.exceptions import ConfigurationError, UnknownScopeError
from repokit.query.scope import Scope
from repokit.utils.logger import get_module_logger

logger = get_module_logger(__name__)

ScopeFunction = Callable[..., Scope]


class ScopeRegistry:
    """
    Lookup table from scope name to a ``(scope, *args, **kwargs) -> Scope`` function.

    Example:
        registry = ScopeRegistry({"bars": lambda scope: scope.where("name", "bar")})
        refined = registry.apply("bars", repository.scope())
    """

    def __init__(self, scopes: Optional[Mapping[str, ScopeFunction]] = None):
        self._scopes: dict[str, ScopeFunction] = {}
        for name, fn in (scopes or {}).items():
            self.register(name, fn)

    def register(self, name: str, fn: ScopeFunction) -> None:
        """
        Register (or replace) a named scope.

        Raises:
            ConfigurationError: If the name is empty or fn is not callable
        """
        if not isinstance(name, str) or not name:
            raise ConfigurationError(f"Scope name must be a non-empty string, got {name!r}")
        if not callable(fn):
            raise ConfigurationError(f"Scope '{name}' must be callable")
        if name in self._scopes:
            logger.debug(f"Replacing named scope '{name}'")
        self._scopes[name] = fn

    def get(self, name: str) -> ScopeFunction:
        try:
            return self._scopes[name]
        except KeyError:
            raise UnknownScopeError(name) from None

    def apply(self, name: str, scope: Scope, *args: Any, **kwargs: Any) -> Scope:
        """Run the named scope function against ``scope``."""
        return self.get(name)(scope, *args, **kwargs)

    def names(self) -> list[str]:
        return sorted(self._scopes)

    def as_dict(self) -> dict[str, ScopeFunction]:
        return dict(self._scopes)

    def __contains__(self, name: object) -> bool:
        return name in self._scopes

    def __iter__(self) -> Iterator[str]:
        return iter(self._scopes)

    def __len__(self) -> int:
        return len(self._scopes)
