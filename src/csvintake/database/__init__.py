"""Database layer for csvintake application."""

from csvintake.database.base import Database
from csvintake.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
