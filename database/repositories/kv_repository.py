from database.connection import get_connection
import logging


def kv_get(key: str) -> str | None:
    conn = get_connection()
    cursor = conn.cursor()
    try:
        cursor.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row[0] if row else None
    finally:
        conn.close()


def kv_set(key: str, value: str) -> bool:
    conn = get_connection()
    cursor = conn.cursor()
    try:
        cursor.execute("""
            INSERT INTO kv_store (key, value)
            VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = CURRENT_TIMESTAMP
        """, (key, value))
        conn.commit()
        return True
    except Exception as e:
        logging.error(f"Error writing key {key}: {e}")
        return False
    finally:
        conn.close()


def kv_keys(prefix: str) -> list[str]:
    conn = get_connection()
    cursor = conn.cursor()
    try:
        cursor.execute("SELECT key FROM kv_store WHERE key LIKE ? ORDER BY key", (prefix + "%",))
        return [row[0] for row in cursor.fetchall()]
    except Exception as e:
        logging.error(f"Error listing keys with prefix {prefix}: {e}")
        return []
    finally:
        conn.close()
