"""
Local SQLite Schema Initialization.

The device cache holds a single key-value table, ``local_store``, whose
values are AES-GCM encrypted blobs written by ``LocalSessionStore``.  A
``schema_version`` row tracks the DDL revision so later revisions can be
rolled forward; on a version mismatch the cache is simply rebuilt, since
everything in it can be fetched again from Supabase.

Usage::

    from star_limpiezas.schema import initialize_schema

    initialize_schema(db.sqlite, StructuredLogger(name="schema"))
"""

from __future__ import annotations

import sqlite3

from star_limpiezas.logger import StructuredLogger

__all__ = ["CURRENT_SCHEMA_VERSION", "initialize_schema"]

CURRENT_SCHEMA_VERSION: int = 1

_TABLE_DEFINITIONS: list[str] = [
    """
    CREATE TABLE IF NOT EXISTS schema_version (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        version INTEGER NOT NULL,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS local_store (
        key TEXT PRIMARY KEY,
        encrypted_payload BLOB NOT NULL,
        nonce BLOB NOT NULL,
        tag BLOB NOT NULL,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
]


def _get_schema_version(conn: sqlite3.Connection) -> int:
    """Return the recorded schema version, or ``0`` for a fresh database."""
    row = conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()
    return int(row[0]) if row is not None else 0


def initialize_schema(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Create the cache tables idempotently.

    An older or newer recorded version drops ``local_store`` before
    recreating it.  Runs in one transaction; on failure the database is
    rolled back and the error re-raised.
    """
    try:
        conn.execute(_TABLE_DEFINITIONS[0])
        version = _get_schema_version(conn)

        if version not in (0, CURRENT_SCHEMA_VERSION):
            logger.warning(
                "Local cache schema v%d does not match v%d; rebuilding cache.",
                version,
                CURRENT_SCHEMA_VERSION,
            )
            conn.execute("DROP TABLE IF EXISTS local_store")

        for ddl in _TABLE_DEFINITIONS[1:]:
            conn.execute(ddl)

        conn.execute(
            """
            INSERT INTO schema_version (id, version) VALUES (1, ?)
            ON CONFLICT(id) DO UPDATE SET version = excluded.version,
                                          applied_at = CURRENT_TIMESTAMP
            """,
            (CURRENT_SCHEMA_VERSION,),
        )
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        logger.error("Local cache schema initialisation failed.", exc_info=True)
        raise

    logger.info("Local cache schema ready (v%d).", CURRENT_SCHEMA_VERSION)
