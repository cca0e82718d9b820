"""
Data Models Package.

Re-exports the Pydantic models for short imports:
    from star_limpiezas.models import UserProfile, UserRole, SessionSnapshot
"""

from star_limpiezas.models.auth_models import (
    AuthErrorCode,
    AuthResult,
    CacheEnvelope,
    ResolvedAuth,
    SessionSnapshot,
    SessionUser,
    ValidationResult,
)
from star_limpiezas.models.enums import ServiceStatus, Shift, UserRole
from star_limpiezas.models.loyalty import (
    ApplicableDiscount,
    AvailableDate,
    AvailableService,
    DiscountConfig,
    DiscountInput,
    Location,
    LoyaltyInput,
    LoyaltyRecord,
    LoyaltySummary,
)
from star_limpiezas.models.permissions import PERMISSIONS, permissions_for
from star_limpiezas.models.service_models import (
    DashboardStats,
    ReportStats,
    ServiceFilters,
    ServiceInput,
    ServiceRecord,
    ServiceResult,
)
from star_limpiezas.models.user import NewClient, ProfileUpdate, UserProfile, UserSummary

__all__ = [
    "ApplicableDiscount",
    "AuthErrorCode",
    "AuthResult",
    "AvailableDate",
    "AvailableService",
    "CacheEnvelope",
    "DashboardStats",
    "DiscountConfig",
    "DiscountInput",
    "Location",
    "LoyaltyInput",
    "LoyaltyRecord",
    "LoyaltySummary",
    "NewClient",
    "PERMISSIONS",
    "ProfileUpdate",
    "ReportStats",
    "ResolvedAuth",
    "ServiceFilters",
    "ServiceInput",
    "ServiceRecord",
    "ServiceResult",
    "ServiceStatus",
    "SessionSnapshot",
    "SessionUser",
    "Shift",
    "UserProfile",
    "UserRole",
    "UserSummary",
    "ValidationResult",
    "permissions_for",
]
