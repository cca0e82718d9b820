"""
Database Abstraction Layer.

Manages the two stores the client core talks to:

- **Supabase (remote)**: authentication and every business table.  It is
  the source of truth for sessions and profiles.
- **SQLite (local)**: the device key-value cache holding the last known
  session and profile.  It is a cache only; nothing is synced back.

This module only owns *connections*; query logic lives in the
repositories and the session store.

Usage (dependency injection at app startup)::

    db = DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        sqlite_path=Path(config.LOCAL_DB_PATH),
        logger=StructuredLogger(name="database"),
    )
"""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Callable, Optional, Union

from supabase import Client as SupabaseClient
from supabase import ClientOptions, create_client

from star_limpiezas.logger import StructuredLogger


class DatabaseManager:
    """Owns the Supabase client(s) and the local SQLite connection.

    When ``supabase_url`` or ``supabase_key`` is empty no client is
    created.  The ``supabase`` property then raises ``RuntimeError``, which
    every caller already treats as "backend unavailable".

    Parameters
    ----------
    supabase_url, supabase_key:
        Project URL and anon key.  May be empty.
    sqlite_path:
        Path of the local cache database, or ``":memory:"``.
    logger:
        Structured logger.
    service_role_key:
        Optional service-role key.  Enables :pyattr:`supabase_admin`, used
        by administrators to create client accounts and to delete an auth
        user whose profile row could not be created.
    client, admin_client:
        Pre-built clients to use instead of calling ``create_client``.
    client_factory:
        Builds the clients returned by :meth:`isolated_client` instead of
        ``create_client``.
    """

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        sqlite_path: Union[Path, str],
        logger: StructuredLogger,
        service_role_key: str = "",
        client: Optional[SupabaseClient] = None,
        admin_client: Optional[SupabaseClient] = None,
        client_factory: Optional[Callable[[], SupabaseClient]] = None,
    ) -> None:
        self._logger: StructuredLogger = logger
        self._supabase_url: str = supabase_url
        self._supabase_key: str = supabase_key
        self._client_factory = client_factory
        self._write_lock: threading.RLock = threading.RLock()

        self._supabase: Optional[SupabaseClient] = client
        self._supabase_admin: Optional[SupabaseClient] = admin_client

        if self._supabase is None and supabase_url and supabase_key:
            self._supabase = self._create(supabase_url, supabase_key, "anon")
        elif self._supabase is None:
            self._logger.warning(
                "Supabase credentials not configured; backend calls are disabled."
            )

        if self._supabase_admin is None and supabase_url and service_role_key:
            self._supabase_admin = self._create(supabase_url, service_role_key, "service_role")

        self._sqlite_conn: sqlite3.Connection = self._connect_sqlite(sqlite_path)

    # ------------------------------------------------------------------
    # Public properties
    # ------------------------------------------------------------------

    @property
    def supabase(self) -> SupabaseClient:
        """Return the Supabase client.

        Raises
        ------
        RuntimeError
            If no client was configured.
        """
        if self._supabase is None:
            raise RuntimeError(
                "Supabase client is not initialised. "
                "Check SUPABASE_URL and SUPABASE_ANON_KEY."
            )
        return self._supabase

    @property
    def supabase_admin(self) -> Optional[SupabaseClient]:
        """Service-role client, or ``None`` when no service key is set."""
        return self._supabase_admin

    def isolated_client(self) -> SupabaseClient:
        """Return a new anon client that keeps its session to itself.

        Signing up through it leaves the shared client's session and its
        auth-event subscribers untouched.

        Raises
        ------
        RuntimeError
            If no client can be built.
        """
        if self._client_factory is not None:
            return self._client_factory()
        if not (self._supabase_url and self._supabase_key):
            raise RuntimeError(
                "Supabase client is not initialised. "
                "Check SUPABASE_URL and SUPABASE_ANON_KEY."
            )
        return create_client(
            self._supabase_url,
            self._supabase_key,
            options=ClientOptions(persist_session=False, auto_refresh_token=False),
        )

    @property
    def is_online(self) -> bool:
        """``True`` when a Supabase client is available."""
        return self._supabase is not None

    @property
    def sqlite(self) -> sqlite3.Connection:
        """Return the local SQLite connection."""
        return self._sqlite_conn

    @property
    def write_lock(self) -> threading.RLock:
        """Lock serialising SQLite writes across threads."""
        return self._write_lock

    def close(self) -> None:
        """Close the local SQLite connection.  Safe to call repeatedly."""
        with self._write_lock:
            try:
                self._sqlite_conn.close()
                self._logger.info("SQLite connection closed.")
            except sqlite3.ProgrammingError:
                pass

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _create(self, url: str, key: str, label: str) -> Optional[SupabaseClient]:
        try:
            client = create_client(url, key)
            self._logger.info("Supabase %s client initialised.", label)
            return client
        except (ValueError, TypeError) as exc:
            self._logger.warning(
                "Supabase %s credential format error: %s.", label, exc,
            )
        except Exception as exc:
            self._logger.error(
                "Unexpected Supabase %s initialisation failure: %s.",
                label,
                exc,
                exc_info=True,
            )
        return None

    def _connect_sqlite(self, path: Union[Path, str]) -> sqlite3.Connection:
        """Open (or create) the local cache database.

        Raises
        ------
        PermissionError
            If the OS denies access to the database file or its directory.
        """
        try:
            conn = sqlite3.connect(str(path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            if str(path) != ":memory:":
                conn.execute("PRAGMA journal_mode=WAL;")
            self._logger.info("SQLite cache opened at %s", path)
            return conn
        except PermissionError as exc:
            msg = (
                f"Cannot open the local cache at '{path}'. "
                "The file or its directory may be read-only or locked."
            )
            self._logger.error(msg)
            raise PermissionError(msg) from exc
