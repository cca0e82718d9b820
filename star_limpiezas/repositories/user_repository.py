"""
User Repository.

Data access for the remote ``users`` table, which holds the profile and
the authoritative role of every account.
"""

from __future__ import annotations

from typing import Optional

from star_limpiezas.models.enums import UserRole
from star_limpiezas.models.user import UserProfile, UserSummary
from star_limpiezas.repositories.base_repository import BaseRepository, Row
from star_limpiezas.utils.string_helpers import sanitize_postgrest_value

PROFILE_COLUMNS: str = "id, name, email, phone, address, role, created_at"


class UserRepository(BaseRepository):
    """Data access layer for user profiles.

    There is no ``delete()``: auth accounts are owned by Supabase Auth and
    services reference users by id.
    """

    TABLE = "users"

    def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        """Fetch a profile by primary key; ``None`` when no row exists."""
        response = (
            self.supabase.table(self.TABLE)
            .select(PROFILE_COLUMNS)
            .eq("id", user_id)
            .maybe_single()
            .execute()
        )
        row = self._first(response)
        return UserProfile.model_validate(row) if row else None

    def get_all(self) -> list[UserProfile]:
        """All profiles, newest first."""
        response = (
            self.supabase.table(self.TABLE)
            .select(PROFILE_COLUMNS)
            .order("created_at", desc=True)
            .execute()
        )
        return [UserProfile.model_validate(row) for row in self._rows(response)]

    def get_summaries(
        self,
        role: Optional[UserRole] = None,
        search: Optional[str] = None,
    ) -> list[UserSummary]:
        """Profiles with their number of service requests, newest first.

        Parameters
        ----------
        role:
            Restrict to one role.
        search:
            Case-insensitive substring matched against name, email and
            phone.  Blank searches are ignored.
        """
        query = self.supabase.table(self.TABLE).select(
            f"{PROFILE_COLUMNS}, user_services(count)"
        )
        if role is not None:
            query = query.eq("role", str(role))
        if search and search.strip():
            safe_search = sanitize_postgrest_value(search)
            query = query.or_(
                f"name.ilike.%{safe_search}%,"
                f"email.ilike.%{safe_search}%,"
                f"phone.ilike.%{safe_search}%"
            )
        response = query.order("created_at", desc=True).execute()
        return [self._to_summary(row) for row in self._rows(response)]

    def insert(self, profile: UserProfile) -> UserProfile:
        """Insert a profile row and return it as stored."""
        payload: Row = profile.model_dump(mode="json", exclude_none=True)
        payload.setdefault("created_at", self._now())
        response = self.supabase.table(self.TABLE).insert(payload).execute()
        row = self._first(response)
        return UserProfile.model_validate(row) if row else profile

    def update(self, user_id: str, changes: Row) -> Optional[UserProfile]:
        """Apply *changes* to a profile; ``None`` when no row matched.

        Raises:
            ValueError: If *changes* contains ``role``; use
                :meth:`update_role` for that.
        """
        if "role" in changes:
            raise ValueError("Role changes must go through update_role().")
        response = (
            self.supabase.table(self.TABLE)
            .update(changes)
            .eq("id", user_id)
            .execute()
        )
        row = self._first(response)
        return UserProfile.model_validate(row) if row else None

    def update_role(self, user_id: str, role: UserRole) -> Optional[UserProfile]:
        response = (
            self.supabase.table(self.TABLE)
            .update({"role": str(role)})
            .eq("id", user_id)
            .execute()
        )
        row = self._first(response)
        return UserProfile.model_validate(row) if row else None

    def count(self) -> int:
        response = self.supabase.table(self.TABLE).select("id", count="exact").execute()
        return self._count(response)

    @staticmethod
    def _to_summary(row: Row) -> UserSummary:
        counts = row.get("user_services") or []
        total = counts[0].get("count", 0) if counts and isinstance(counts[0], dict) else 0
        return UserSummary.model_validate({**row, "total_services": total or 0})
