"""
urinorm.db — SQLite DDL and row helpers for the durable cache tier.
"""

from typing import Optional

CACHE_TABLE = "cache"


def create_cache_table(cursor):
    cursor.execute(f"""
    CREATE TABLE IF NOT EXISTS {CACHE_TABLE} (
        key       TEXT  NOT NULL PRIMARY KEY,
        value     BLOB,
        expires   REAL  NOT NULL
    )
    """)


def purge_expired(cursor, now: float) -> int:
    """DELETE every row whose expiry lies in the past.  Returns the row count."""
    cursor.execute(f"DELETE FROM {CACHE_TABLE} WHERE expires <= :now", {"now": now})
    return cursor.rowcount


def select_row(cursor, key: str) -> Optional[tuple]:
    """Return ``(value, expires)`` for ``key`` or None."""
    cursor.execute(
        f"SELECT value, expires FROM {CACHE_TABLE} WHERE key = :key",
        {"key": key},
    )
    return cursor.fetchone()


def upsert_row(cursor, key: str, value: bytes, expires: float):
    cursor.execute(
        f"""
        INSERT OR REPLACE INTO {CACHE_TABLE} (key, value, expires)
        VALUES (:key, :value, :expires)
        """,
        {"key": key, "value": value, "expires": expires},
    )


def delete_row(cursor, key: str):
    cursor.execute(f"DELETE FROM {CACHE_TABLE} WHERE key = :key", {"key": key})


def delete_all_rows(cursor):
    cursor.execute(f"DELETE FROM {CACHE_TABLE}")
