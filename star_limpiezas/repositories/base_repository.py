"""
Base Repository.

Provides shared infrastructure for all repositories:
- DatabaseManager reference
- Logger reference
- Convenience property for the Supabase client
- Helpers that normalise PostgREST responses

Repositories talk to Supabase only.  Business tables are never mirrored
locally, so a backend error propagates to the calling service, which
turns it into a ``ServiceResult`` failure.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from supabase import Client as SupabaseClient

from star_limpiezas.database import DatabaseManager
from star_limpiezas.logger import StructuredLogger

Row = dict[str, Any]


class BaseRepository:
    """Base class for all repositories. Receives dependencies via __init__."""

    TABLE: str = ""

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger

    @property
    def supabase(self) -> SupabaseClient:
        """Returns the Supabase client.

        Raises:
            RuntimeError: If no backend is configured.
        """
        return self._db.supabase

    @staticmethod
    def _now() -> str:
        """UTC timestamp in ISO-8601, as stored in ``created_at``/``updated_at``."""
        return datetime.now(timezone.utc).isoformat()

    @staticmethod
    def _rows(response: object) -> list[Row]:
        """Return ``response.data`` as a list of rows.

        ``maybe_single()`` yields ``None`` instead of a response when no
        row matched; that reads as an empty list.
        """
        if response is None:
            return []
        data = getattr(response, "data", None)
        if data is None:
            return []
        if isinstance(data, dict):
            return [data]
        return list(data)

    @classmethod
    def _first(cls, response: object) -> Optional[Row]:
        rows = cls._rows(response)
        return rows[0] if rows else None

    @staticmethod
    def _count(response: object) -> int:
        count = getattr(response, "count", None)
        return int(count) if count is not None else 0
