"""
Service Request Repository.

Data access for ``user_services`` (cleaning service requests) and the
``service_available`` catalogue.
"""

from __future__ import annotations

from typing import Optional

from star_limpiezas.models.enums import ServiceStatus
from star_limpiezas.models.service_models import ServiceFilters, ServiceRecord
from star_limpiezas.repositories.base_repository import BaseRepository, Row
from star_limpiezas.utils.string_helpers import sanitize_postgrest_value

# Rows come back with their location and client joined in.
SERVICE_SELECT: str = "*, location:location(id, location), user:users(id, name, email)"


class ServiceRepository(BaseRepository):
    """Data access layer for service requests."""

    TABLE = "user_services"
    CATALOG_TABLE = "service_available"

    def find(self, filters: Optional[ServiceFilters] = None) -> list[ServiceRecord]:
        """Services matching *filters*, latest ``assigned_date`` first.

        ``service_type`` is a case-insensitive substring of
        ``service_name``; the date bounds are inclusive.
        """
        filters = filters or ServiceFilters()
        query = self.supabase.table(self.TABLE).select(SERVICE_SELECT)

        if filters.user_id:
            query = query.eq("user_id", filters.user_id)
        if filters.status:
            query = query.eq("status", str(filters.status))
        if filters.service_type:
            query = query.ilike(
                "service_name", f"%{sanitize_postgrest_value(filters.service_type)}%"
            )
        if filters.date_from:
            query = query.gte("assigned_date", filters.date_from.isoformat())
        if filters.date_to:
            query = query.lte("assigned_date", filters.date_to.isoformat())

        response = query.order("assigned_date", desc=True).execute()
        return [ServiceRecord.model_validate(row) for row in self._rows(response)]

    def get_by_id(self, service_id: int) -> Optional[ServiceRecord]:
        response = (
            self.supabase.table(self.TABLE)
            .select(SERVICE_SELECT)
            .eq("id", service_id)
            .maybe_single()
            .execute()
        )
        row = self._first(response)
        return ServiceRecord.model_validate(row) if row else None

    def insert(self, data: Row) -> ServiceRecord:
        """Insert a new request with status ``pending``."""
        payload: Row = {
            **data,
            "status": str(ServiceStatus.PENDING),
            "created_at": self._now(),
        }
        response = self.supabase.table(self.TABLE).insert(payload).execute()
        row = self._first(response)
        return ServiceRecord.model_validate(row if row else payload)

    def update(self, service_id: int, changes: Row) -> Optional[ServiceRecord]:
        """Apply *changes*; ``None`` when no row matched."""
        response = (
            self.supabase.table(self.TABLE)
            .update(changes)
            .eq("id", service_id)
            .execute()
        )
        row = self._first(response)
        return ServiceRecord.model_validate(row) if row else None

    def delete(self, service_id: int) -> None:
        self.supabase.table(self.TABLE).delete().eq("id", service_id).execute()

    def count(self) -> int:
        response = self.supabase.table(self.TABLE).select("id", count="exact").execute()
        return self._count(response)

    def list_statuses(self) -> list[str]:
        """The ``status`` column of every request."""
        response = self.supabase.table(self.TABLE).select("status").execute()
        return [str(row.get("status")) for row in self._rows(response)]

    def count_completed(self, user_id: str) -> int:
        """Number of completed requests belonging to *user_id*."""
        response = (
            self.supabase.table(self.TABLE)
            .select("status, service_name")
            .eq("user_id", user_id)
            .eq("status", str(ServiceStatus.COMPLETED))
            .execute()
        )
        return len(self._rows(response))

    def list_catalog(self) -> list[Row]:
        """Bookable service types, by name."""
        response = self.supabase.table(self.CATALOG_TABLE).select("*").order("name").execute()
        return self._rows(response)
