"""Database layer for bankrecon application."""

from bankrecon.database.base import Database
from bankrecon.database.factories import create_database, create_sqlite_database

__all__ = ["Database", "create_database", "create_sqlite_database"]
