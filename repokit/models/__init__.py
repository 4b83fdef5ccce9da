"""
Configuration models for repositories.
"""

from .repository_config import RepositoryConfig, TimestampColumns, TimestampEvent

__all__ = ["RepositoryConfig", "TimestampColumns", "TimestampEvent"]
