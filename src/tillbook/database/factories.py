"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from tillbook.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance with tables and seed rows in place.

    Args:
        database_path: Path to SQLite database file. If None, checks TILLBOOK_DB_PATH
            environment variable, then defaults to ~/.tillbook/tillbook.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        # Check environment variable
        database_path = os.environ.get("TILLBOOK_DB_PATH")

    if database_path is None:
        # Default to ~/.tillbook/tillbook.db
        home = Path.home()
        db_dir = home / ".tillbook"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "tillbook.db")

    database_url = f"sqlite:///{database_path}"
    db = SQLAlchemyDatabase(database_url)
    db.initialize_schema()
    return db
