"""
Database Package

Contains async engine creation and lifecycle utilities.
"""

from .init_db import create_async_database_engine, dispose_async_database, initialize_async_database

__all__ = ["create_async_database_engine", "dispose_async_database", "initialize_async_database"]
