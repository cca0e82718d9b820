"""
User Profile Models.

``UserProfile`` mirrors a row of the remote ``users`` table.  Its ``role``
is the only authorization signal in the application; auth metadata is
never consulted for it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from star_limpiezas.models.enums import UserRole


class UserProfile(BaseModel):
    """Application-level user record, including the authorization role.

    ``id`` must equal the Supabase Auth user id.  Role strings outside
    :class:`UserRole` are coerced to ``UserRole.USER`` so an unexpected
    value can never grant more than the least-privileged role.
    """

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    name: str = ""
    email: str = ""
    phone: Optional[str] = None
    address: Optional[str] = None
    role: UserRole = UserRole.USER
    created_at: Optional[datetime] = None

    @field_validator("role", mode="before")
    @classmethod
    def _coerce_unknown_role(cls, value: object) -> object:
        if isinstance(value, str) and value in set(UserRole):
            return value
        return UserRole.USER

    @field_validator("name", "email", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value


class UserSummary(UserProfile):
    """Profile row as listed on admin screens, with a service counter."""

    total_services: int = 0


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile.

    ``role`` is deliberately absent and unknown keys are rejected: role
    changes only happen through the admin-gated
    ``UserService.update_user_role`` path.
    """

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    def changes(self) -> dict[str, str]:
        """Return only the fields that were explicitly provided."""
        return self.model_dump(exclude_unset=True)


class NewClient(BaseModel):
    """Input for an administrator creating a client account."""

    name: str = ""
    email: str = ""
    password: str = ""
    phone: Optional[str] = None
    address: Optional[str] = None
