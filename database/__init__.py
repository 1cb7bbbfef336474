import logging

# Public API for the database package
from database.connection import get_connection as get_connection
from database.repositories.kv_repository import (
    kv_get as kv_get,
    kv_keys as kv_keys,
    kv_set as kv_set,
)
from database.repositories.progress_repository import (
    list_progress_user_ids as list_progress_user_ids,
    load_progress as load_progress,
    progress_key as progress_key,
    save_progress as save_progress,
)

__all__ = [
    "get_connection",
    "create_table",
    "kv_get",
    "kv_keys",
    "kv_set",
    "list_progress_user_ids",
    "load_progress",
    "progress_key",
    "save_progress",
]


def create_table():
    """Initializes the database schema."""
    conn = get_connection()
    cursor = conn.cursor()
    try:
        # Progress documents and small UI state values, one JSON/text blob per key
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        conn.commit()
        logging.info("Database schema ready")
    finally:
        conn.close()
