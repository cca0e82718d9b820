"""
Shared Enumerations for Star Limpiezas Models.

StrEnum values compare equal to their string equivalents, so rows read
straight from Supabase (``row["role"] == "admin"``) keep working.
"""

from __future__ import annotations

from enum import StrEnum


class UserRole(StrEnum):
    """Roles stored in the ``users`` table.

    ``USER`` is the least-privileged value and the default for every
    fallback path: when the role is unknown it degrades to ``USER``.
    """

    ADMIN = "admin"
    USER = "user"


class ServiceStatus(StrEnum):
    """Lifecycle of a cleaning service request."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Shift(StrEnum):
    """Working shifts a service can be booked into."""

    MORNING = "morning"
    AFTERNOON = "afternoon"
