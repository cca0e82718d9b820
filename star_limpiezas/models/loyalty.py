"""
Loyalty, Discount and Catalog Models.

Plain records for ``customer_loyalty``, ``service_discount_config``,
``location``, ``service_available`` and ``available_dates``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LoyaltyRecord(BaseModel):
    """Loyalty points accumulated by a client."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: Optional[int] = None
    user_id: str
    points: int = 0
    service_type: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LoyaltyInput(BaseModel):
    """Fields accepted when creating or editing a loyalty record."""

    user_id: Optional[str] = None
    points: int = Field(default=0, ge=0)
    service_type: Optional[str] = None


class DiscountConfig(BaseModel):
    """Discount unlocked once a client reaches ``services_required`` points."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: Optional[int] = None
    service_type: str = ""
    discount_percentage: float = 0.0
    services_required: int = 1
    active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DiscountInput(BaseModel):
    """Fields accepted when creating or editing a discount configuration."""

    service_type: str = ""
    discount_percentage: float = 0.0
    services_required: int = Field(default=1, ge=1)
    active: bool = True


class LoyaltySummary(BaseModel):
    """Points earned from completed services."""

    points: int = 0
    services: int = 0


class ApplicableDiscount(BaseModel):
    """Best discount a client currently qualifies for."""

    discount: float = 0.0
    config: Optional[DiscountConfig] = None


class Location(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: Optional[int] = None
    location: str = ""
    created_at: Optional[datetime] = None


class AvailableService(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="allow")

    id: Optional[int] = None
    name: str = ""


class AvailableDate(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="allow")

    id: Optional[int] = None
    service: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    created_at: Optional[datetime] = None
