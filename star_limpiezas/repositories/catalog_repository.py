"""
Catalog Repository.

Data access for ``location`` and ``available_dates``.
"""

from __future__ import annotations

from typing import Optional

from star_limpiezas.models.loyalty import AvailableDate, Location
from star_limpiezas.repositories.base_repository import BaseRepository, Row


class CatalogRepository(BaseRepository):
    """Service locations and bookable date windows."""

    TABLE = "location"
    DATES_TABLE = "available_dates"

    def list_locations(self) -> list[Location]:
        response = self.supabase.table(self.TABLE).select("*").order("location").execute()
        return [Location.model_validate(row) for row in self._rows(response)]

    def insert_location(self, name: str) -> Location:
        payload: Row = {"location": name, "created_at": self._now()}
        response = self.supabase.table(self.TABLE).insert(payload).execute()
        row = self._first(response)
        return Location.model_validate(row if row else payload)

    def count_locations(self) -> int:
        response = self.supabase.table(self.TABLE).select("id", count="exact").execute()
        return self._count(response)

    def list_available_dates(self, service: Optional[str] = None) -> list[AvailableDate]:
        """Date windows by ``start_date``; optionally for one service."""
        query = self.supabase.table(self.DATES_TABLE).select("*")
        if service:
            query = query.eq("service", service)
        response = query.order("start_date").execute()
        return [AvailableDate.model_validate(row) for row in self._rows(response)]

    def insert_available_date(self, data: Row) -> AvailableDate:
        payload: Row = {**data, "created_at": self._now()}
        response = self.supabase.table(self.DATES_TABLE).insert(payload).execute()
        row = self._first(response)
        return AvailableDate.model_validate(row if row else payload)
