"""
SQLite database integration and simple migration system.

This module provides functions for resolving the database path
(``get_database_path``), obtaining a connection (``get_connection``)
and applying migrations (``init_db``).  The migration mechanism stores
applied versions in the ``migrations`` table and executes new
migrations in order.

Unlike a process-wide handle, every function takes the database path
explicitly; the ``SqliteRecordStore`` owns that path and is passed to
the services that need it.
"""

import logging
import os
import sqlite3
from pathlib import Path
from typing import List, Tuple


logger = logging.getLogger(__name__)


MIGRATIONS: List[Tuple[int, str]] = [
    # Migration 1: turfs and bookings collections
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS turfs (
            id TEXT PRIMARY KEY,
            owner_id TEXT NOT NULL,
            name TEXT NOT NULL DEFAULT '',
            description TEXT,
            sport TEXT,
            price_per_hour REAL NOT NULL DEFAULT 0,
            owner_name TEXT,
            owner_email TEXT,
            owner_phone TEXT,
            images TEXT,
            amenities TEXT,
            is_verified INTEGER NOT NULL DEFAULT 0,
            is_active INTEGER NOT NULL DEFAULT 0,
            rejection_reason TEXT,
            verified_at TIMESTAMP,
            verified_by TEXT,
            created_at TIMESTAMP NOT NULL,
            version INTEGER NOT NULL DEFAULT 0
        );

        -- Bookings reference turfs by id only.  Turf deletion is an
        -- external bulk operation, so no foreign key is declared.
        CREATE TABLE IF NOT EXISTS bookings (
            id TEXT PRIMARY KEY,
            turf_id TEXT NOT NULL,
            user_id TEXT NOT NULL,
            user_name TEXT NOT NULL,
            user_email TEXT NOT NULL,
            user_phone TEXT,
            turf_name TEXT,
            date TEXT,
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            total_amount REAL NOT NULL DEFAULT 0,
            status TEXT NOT NULL DEFAULT 'confirmed',
            checked_in_at TIMESTAMP,
            created_at TIMESTAMP
        );
        """,
    ),
    # Migration 2: audit trail for moderation and check-in actions
    (
        2,
        """
        CREATE TABLE IF NOT EXISTS audit_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT,
            action TEXT NOT NULL,
            object_type TEXT NOT NULL,
            object_id TEXT,
            timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            details TEXT
        );
        """,
    ),
    # Migration 3: indices for the queries the services issue
    (
        3,
        """
        CREATE INDEX IF NOT EXISTS idx_turfs_is_verified ON turfs(is_verified);
        CREATE INDEX IF NOT EXISTS idx_turfs_owner_id ON turfs(owner_id);
        CREATE INDEX IF NOT EXISTS idx_bookings_turf_id ON bookings(turf_id);
        CREATE INDEX IF NOT EXISTS idx_audit_logs_object ON audit_logs(object_type, object_id);
        """,
    ),
]


def get_database_path(db_url: str) -> str:
    """Compute the path to the SQLite database file.

    Absolute paths are returned unchanged; relative paths are resolved
    against the project root (the directory containing the
    ``turf_platform_api`` package).
    """
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent.parent
    return str((base_dir / db_url).resolve())


def get_connection(db_path: str) -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    Rows are returned as ``sqlite3.Row`` so columns can be accessed by
    name.  Timestamps are stored and returned as ISO strings; parsing
    happens in the pydantic models.
    """
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str) -> None:
    """Create the database if needed and apply pending migrations."""
    conn = get_connection(db_path)
    try:
        cursor = conn.cursor()
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY, applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)"
        )
        row = cursor.execute("SELECT MAX(version) AS v FROM migrations").fetchone()
        current = row["v"] or 0
        for version, script in MIGRATIONS:
            if version <= current:
                continue
            cursor.executescript(script)
            cursor.execute("INSERT INTO migrations (version) VALUES (?)", (version,))
            conn.commit()
            logger.info("Applied migration %s to %s", version, db_path)
    finally:
        conn.close()
