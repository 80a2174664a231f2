"""
Database connection management.

Provides SQLite connections and schema creation for the reference store.
"""

import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = "menugen.db"

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS item_content (
        item_id TEXT PRIMARY KEY,
        tenant_id TEXT NOT NULL,
        guard_name TEXT NOT NULL,
        guard_language_override TEXT,
        language TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        recipe TEXT NOT NULL DEFAULT '[]',
        nutrition TEXT NOT NULL DEFAULT '{}',
        allergen_codes TEXT NOT NULL DEFAULT '[]',
        is_excluded INTEGER NOT NULL DEFAULT 0,
        generated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_item_content_tenant ON item_content(tenant_id)",
    """
    CREATE TABLE IF NOT EXISTS ingredient_nutrition (
        name TEXT NOT NULL COLLATE NOCASE,
        language TEXT NOT NULL,
        calories_per_100g REAL NOT NULL DEFAULT 0,
        protein_per_100g REAL NOT NULL DEFAULT 0,
        carbs_per_100g REAL NOT NULL DEFAULT 0,
        fat_per_100g REAL NOT NULL DEFAULT 0,
        updated_at TEXT NOT NULL,
        PRIMARY KEY (name, language)
    )
    """,
    # Append-only ledger: no UPDATE or DELETE is ever issued against it.
    """
    CREATE TABLE IF NOT EXISTS usage_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp TEXT NOT NULL,
        tenant_id TEXT NOT NULL,
        request_type TEXT NOT NULL,
        model TEXT NOT NULL DEFAULT '',
        item_id TEXT,
        tokens_used INTEGER NOT NULL DEFAULT 0,
        cost_estimate REAL NOT NULL DEFAULT 0,
        processing_time_ms INTEGER NOT NULL DEFAULT 0,
        error TEXT,
        request_id TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_usage_log_tenant_ts ON usage_log(tenant_id, timestamp)",
)


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Create and return a SQLite database connection.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLite connection
    """
    path = Path(db_path)
    conn = sqlite3.connect(str(path))
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the item, ingredient and usage tables if they don't exist.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        for statement in _SCHEMA:
            conn.execute(statement)
        conn.commit()
    finally:
        conn.close()
