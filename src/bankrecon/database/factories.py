"""Build store instances from a file path or a SQLAlchemy URL."""

import os
from pathlib import Path
from typing import Optional

from bankrecon.database.sqlalchemy_db import SQLAlchemyDatabase

DB_PATH_ENV = "BANKRECON_DB_PATH"


def default_database_path() -> Path:
    """Location of the reconciliation database when none is given.

    ``BANKRECON_DB_PATH`` wins; otherwise ``~/.bankrecon/bankrecon.db``.
    """
    configured = os.environ.get(DB_PATH_ENV)
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".bankrecon" / "bankrecon.db"


def create_sqlite_database(database_path: Optional[str | Path] = None) -> SQLAlchemyDatabase:
    """Open the SQLite store at ``database_path``, creating its directory.

    Args:
        database_path: Database file; falls back to default_database_path()
    """
    path = Path(database_path).expanduser() if database_path else default_database_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    return create_database(f"sqlite:///{path}")


def create_database(database_url: str) -> SQLAlchemyDatabase:
    """Open a store from a full SQLAlchemy URL (e.g. PostgreSQL)."""
    return SQLAlchemyDatabase(database_url)
