"""
Loyalty and Discount Repositories.

Data access for ``customer_loyalty`` and ``service_discount_config``.
Both stamp ``created_at`` on insert and ``updated_at`` on update.
"""

from __future__ import annotations

from typing import Optional

from star_limpiezas.models.loyalty import DiscountConfig, LoyaltyRecord
from star_limpiezas.repositories.base_repository import BaseRepository, Row


class LoyaltyRepository(BaseRepository):
    """Loyalty point records."""

    TABLE = "customer_loyalty"

    def get_all(self, user_id: Optional[str] = None) -> list[LoyaltyRecord]:
        """Records, most recently updated first; optionally for one user."""
        query = self.supabase.table(self.TABLE).select("*")
        if user_id:
            query = query.eq("user_id", user_id)
        response = query.order("updated_at", desc=True).execute()
        return [LoyaltyRecord.model_validate(row) for row in self._rows(response)]

    def insert(self, data: Row) -> LoyaltyRecord:
        now = self._now()
        payload: Row = {**data, "created_at": now, "updated_at": now}
        response = self.supabase.table(self.TABLE).insert(payload).execute()
        row = self._first(response)
        return LoyaltyRecord.model_validate(row if row else payload)

    def update(self, loyalty_id: int, changes: Row) -> Optional[LoyaltyRecord]:
        payload: Row = {**changes, "updated_at": self._now()}
        response = (
            self.supabase.table(self.TABLE)
            .update(payload)
            .eq("id", loyalty_id)
            .execute()
        )
        row = self._first(response)
        return LoyaltyRecord.model_validate(row) if row else None

    def delete(self, loyalty_id: int) -> None:
        self.supabase.table(self.TABLE).delete().eq("id", loyalty_id).execute()


class DiscountConfigRepository(BaseRepository):
    """Discount configurations per service type."""

    TABLE = "service_discount_config"

    def get_all(self) -> list[DiscountConfig]:
        """All configurations, newest first."""
        response = (
            self.supabase.table(self.TABLE)
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )
        return [DiscountConfig.model_validate(row) for row in self._rows(response)]

    def get_by_id(self, config_id: int) -> Optional[DiscountConfig]:
        response = (
            self.supabase.table(self.TABLE)
            .select("*")
            .eq("id", config_id)
            .maybe_single()
            .execute()
        )
        row = self._first(response)
        return DiscountConfig.model_validate(row) if row else None

    def insert(self, data: Row) -> DiscountConfig:
        payload: Row = {**data, "created_at": self._now()}
        response = self.supabase.table(self.TABLE).insert(payload).execute()
        row = self._first(response)
        return DiscountConfig.model_validate(row if row else payload)

    def update(self, config_id: int, changes: Row) -> Optional[DiscountConfig]:
        payload: Row = {**changes, "updated_at": self._now()}
        response = (
            self.supabase.table(self.TABLE)
            .update(payload)
            .eq("id", config_id)
            .execute()
        )
        row = self._first(response)
        return DiscountConfig.model_validate(row) if row else None

    def delete(self, config_id: int) -> None:
        self.supabase.table(self.TABLE).delete().eq("id", config_id).execute()
