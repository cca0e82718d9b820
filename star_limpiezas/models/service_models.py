"""
Service Layer Data Transfer Objects.

Pydantic models for the cleaning-service records and the generic result
envelope returned by every data service.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from star_limpiezas.models.enums import ServiceStatus, Shift

T = TypeVar("T")

__all__ = [
    "DashboardStats",
    "ReportStats",
    "ServiceFilters",
    "ServiceInput",
    "ServiceRecord",
    "ServiceResult",
]


def parse_day(value: Optional[str]) -> Optional[date]:
    """Parse the date part of an ISO date or datetime string."""
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Service requests
# ---------------------------------------------------------------------------

class ServiceRecord(BaseModel):
    """A row of ``user_services`` with its joined location and user."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: Optional[int] = None
    user_id: Optional[str] = None
    service_name: Optional[str] = None
    assigned_date: Optional[str] = None
    shift: Optional[Shift] = None
    hours: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    location_id: Optional[int] = None
    notes: Optional[str] = None
    status: ServiceStatus = ServiceStatus.PENDING
    created_at: Optional[datetime] = None
    location: Optional[dict[str, Any]] = None
    user: Optional[dict[str, Any]] = None

    @field_validator("hours", "assigned_date", mode="before")
    @classmethod
    def _stringify(cls, value: object) -> object:
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("shift", mode="before")
    @classmethod
    def _blank_shift(cls, value: object) -> object:
        return value or None

    @property
    def assigned_day(self) -> Optional[date]:
        return parse_day(self.assigned_date)

    @property
    def location_name(self) -> str:
        if self.location:
            return str(self.location.get("location") or "")
        return ""

    @property
    def client_name(self) -> str:
        if self.user:
            return str(self.user.get("name") or "")
        return ""


class ServiceInput(BaseModel):
    """Fields accepted when creating or editing a service request."""

    model_config = ConfigDict(extra="ignore")

    service_name: Optional[str] = None
    assigned_date: Optional[str] = None
    user_id: Optional[str] = None
    shift: Optional[Shift] = Shift.MORNING
    hours: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    location_id: Optional[int] = None
    notes: Optional[str] = None

    @field_validator("hours", "assigned_date", mode="before")
    @classmethod
    def _stringify(cls, value: object) -> object:
        if value is None or value == "":
            return None
        return str(value)


class ServiceFilters(BaseModel):
    """Optional filters for service listings and reports."""

    status: Optional[ServiceStatus] = None
    service_type: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    user_id: Optional[str] = None

    @field_validator("status", "service_type", "user_id", "date_from", "date_to", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        return value or None


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

class ReportStats(BaseModel):
    """Per-status totals for a list of services."""

    total: int = 0
    pending: int = 0
    confirmed: int = 0
    cancelled: int = 0
    completed: int = 0


class DashboardStats(BaseModel):
    """Headline counters for the home dashboard."""

    total_services: int = 0
    total_users: int = 0
    total_locations: int = 0
    services_by_status: dict[str, int] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Generic service models
# ---------------------------------------------------------------------------

class ServiceResult(BaseModel, Generic[T]):
    """Standard service return envelope.

    ``status_code`` follows HTTP conventions: 400 validation, 403
    permission, 404 missing, 503 backend not configured, 500 backend
    failure.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    status_code: int = 200
