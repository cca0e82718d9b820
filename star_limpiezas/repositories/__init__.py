"""Supabase data access layer."""

from star_limpiezas.repositories.base_repository import BaseRepository
from star_limpiezas.repositories.catalog_repository import CatalogRepository
from star_limpiezas.repositories.loyalty_repository import (
    DiscountConfigRepository,
    LoyaltyRepository,
)
from star_limpiezas.repositories.service_repository import ServiceRepository
from star_limpiezas.repositories.user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "CatalogRepository",
    "DiscountConfigRepository",
    "LoyaltyRepository",
    "ServiceRepository",
    "UserRepository",
]
