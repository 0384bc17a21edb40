"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from ledgerflow.database.sqlalchemy_db import SQLAlchemyDatabase

DEFAULT_DB_NAME = "ledgerflow.db"


def default_database_path() -> Path:
    return Path.home() / ".ledgerflow" / DEFAULT_DB_NAME


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    The path is taken from the argument, then LEDGERFLOW_DB_PATH, then
    ``~/.ledgerflow/ledgerflow.db``. ``~`` is expanded and missing parent
    directories are created, so every company's books live in one file.

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = os.environ.get("LEDGERFLOW_DB_PATH")

    path = Path(database_path).expanduser() if database_path else default_database_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    return SQLAlchemyDatabase(f"sqlite:///{path}")
