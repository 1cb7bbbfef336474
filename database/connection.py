import sqlite3
from pathlib import Path
from typing import Any

from core.config import settings


def get_connection() -> Any:
    """
    Returns a sqlite connection to the configured database file.
    Rows behave like both tuples and mappings.
    """
    db_path = Path(settings.db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(settings.db_path)
    conn.row_factory = sqlite3.Row
    return conn
