"""
Library-level exceptions for repokit.

Query execution errors are never wrapped: SQLAlchemy and driver exceptions
reach the caller unchanged. The classes here only cover misuse of the
repository layer itself.
"""


class RepokitError(Exception):
    """Base class for errors raised by repokit itself."""
    pass


class ConfigurationError(RepokitError):
    """
    Raised when repository or scope configuration is invalid.

    This covers:
    - Missing table name when no scope is supplied
    - Empty or malformed primary key declarations
    - Invalid named scope registrations
    """
    pass


class UnknownScopeError(RepokitError, KeyError):
    """Raised when a named scope is looked up but was never registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Unknown scope: {self.name!r}"
