import logging
import sqlite3
from contextlib import contextmanager

from database.schema import kv_schema
from config import DB_PATH


# KEY / VALUE COMMANDS =======================================

def get_value(key, db_path=None):
    with get_db(db_path) as conn:
        cursor = conn.cursor()
        cursor.execute('SELECT value FROM kv_store WHERE key = ?', (key,))
        row = cursor.fetchone()
        if row:
            return row['value']
        return None


def set_value(key, value, db_path=None):
    with get_db(db_path) as conn:
        cursor = conn.cursor()
        cursor.execute(
            """INSERT INTO kv_store (key, value, updated_at)
               VALUES (?, ?, datetime('now'))
               ON CONFLICT(key) DO UPDATE
               SET value = excluded.value, updated_at = excluded.updated_at
            """,
            (key, value)
        )
        logging.debug(f"Stored {len(value)} chars under {key!r}")


def delete_value(key, db_path=None):
    with get_db(db_path) as conn:
        cursor = conn.cursor()
        cursor.execute('DELETE FROM kv_store WHERE key = ?', (key,))
        return cursor.rowcount > 0


# DB CONNECTION ==============================================

@contextmanager
def get_db(db_path=None):
    conn = sqlite3.connect(db_path or DB_PATH)
    conn.row_factory = sqlite3.Row

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db(db_path=None):
    with get_db(db_path) as conn:
        conn.execute(kv_schema)
