"""
SQLite database connection utility.
Backs the people, links and feature_requests tables.
"""
import sqlite3
import logging
from typing import Optional, List, Dict, Any, Union

from config import PEOPLE_WEB_DB_PATH

logger = logging.getLogger("people_web")

DB_PATH = PEOPLE_WEB_DB_PATH

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS people (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        affiliations TEXT,
        photo_url TEXT,
        peeps TEXT,
        stream TEXT,
        interests TEXT,
        position_x REAL NOT NULL,
        position_y REAL NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS links (
        id TEXT PRIMARY KEY,
        source_id TEXT NOT NULL,
        target_id TEXT NOT NULL,
        description TEXT NOT NULL,
        type TEXT NOT NULL,
        url TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (source_id) REFERENCES people(id) ON DELETE CASCADE,
        FOREIGN KEY (target_id) REFERENCES people(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS feature_requests (
        id TEXT PRIMARY KEY,
        author_name TEXT,
        request_text TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_links_source ON links(source_id)",
    "CREATE INDEX IF NOT EXISTS idx_links_target ON links(target_id)",
]


def get_db_connection():
    """Create a new database connection with foreign keys enforced."""
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    # Cascading deletes only fire when this is on, and it is per-connection
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db() -> None:
    """Create tables and indexes if they don't exist yet."""
    conn = get_db_connection()
    try:
        for statement in SCHEMA_STATEMENTS:
            conn.execute(statement)
        conn.commit()
        logger.info(f"Database initialized at {DB_PATH}")
    finally:
        conn.close()


def execute_query(query: str, params: Optional[tuple] = None, fetch: bool = True, commit: bool = False) -> Union[List[Dict[str, Any]], None]:
    """Execute a query and return results as a list of dicts."""
    conn = get_db_connection()
    try:
        cur = conn.cursor()
        cur.execute(query, params or ())

        result = None
        if fetch:
            rows = cur.fetchall()
            result = [dict(row) for row in rows]

        if commit or not fetch:
            conn.commit()

        return result
    except Exception as e:
        logger.error(f"SQLite query failed: {e}")
        conn.rollback()
        raise
    finally:
        conn.close()


def execute_update(query: str, params: Optional[tuple] = None) -> int:
    """Execute an update/insert/delete query and return the affected row count."""
    conn = get_db_connection()
    try:
        cur = conn.execute(query, params or ())
        conn.commit()
        return cur.rowcount
    except Exception as e:
        logger.error(f"SQLite update failed: {e}")
        conn.rollback()
        raise
    finally:
        conn.close()
