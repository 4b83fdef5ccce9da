"""
Repository package for database abstraction layer.

Provides scoped CRUD operations and named scope lookup.
"""

from .base_repository import Repository
from .scope_registry import ScopeRegistry

__all__ = ["Repository", "ScopeRegistry"]
