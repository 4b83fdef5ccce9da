"""
Query scopes built on SQLAlchemy Core.
"""

from .scope import CompiledQuery, Scope

__all__ = ["CompiledQuery", "Scope"]
