"""
Business Logic Services Package.

Services depend on the Repository layer for data access and on
``AuthState`` for the signed-in identity.

The ``create_services()`` factory wires every repository and service together,
returning a typed dict that the host application can consume without
knowing the internal dependency graph.
"""

from __future__ import annotations

from typing import Optional, TypedDict

from star_limpiezas.auth import AuthState
from star_limpiezas.config import AppConfig
from star_limpiezas.database import DatabaseManager
from star_limpiezas.logger import StructuredLogger, get_logger
from star_limpiezas.repositories.catalog_repository import CatalogRepository
from star_limpiezas.repositories.loyalty_repository import (
    DiscountConfigRepository,
    LoyaltyRepository,
)
from star_limpiezas.repositories.service_repository import ServiceRepository
from star_limpiezas.repositories.user_repository import UserRepository
from star_limpiezas.services.auth_service import AuthService
from star_limpiezas.services.bonifications import BonificationService
from star_limpiezas.services.catalog import CatalogService
from star_limpiezas.services.profile_loader import ProfileLoader
from star_limpiezas.services.reports import ReportService
from star_limpiezas.services.service_requests import ServiceRequestService
from star_limpiezas.services.session_resolver import SessionResolver
from star_limpiezas.services.session_store import LocalSessionStore
from star_limpiezas.services.users import UserService


class ServiceContainer(TypedDict):
    """Typed container for all application services."""

    # --- Session and auth ---
    profile_loader: ProfileLoader
    session_resolver: SessionResolver
    auth_service: AuthService

    # --- Data services ---
    user_service: UserService
    service_request_service: ServiceRequestService
    bonification_service: BonificationService
    catalog_service: CatalogService
    report_service: ReportService


def create_services(
    db: DatabaseManager,
    config: AppConfig,
    state: AuthState,
    store: LocalSessionStore,
    logger: Optional[StructuredLogger] = None,
) -> ServiceContainer:
    """
    Wire all repositories and services together.

    This is the single composition root for the service layer.  The
    entry point calls it once at startup.

    Args:
        db: Initialised DatabaseManager with Supabase + SQLite ready.
        config: Application configuration.
        state: The process-wide auth state the auth services write to.
        store: Encrypted local session/profile cache.
        logger: Shared service logger; defaults to ``get_logger("services")``.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    logger = logger or get_logger("services")

    # ------------------------------------------------------------------
    # 1. Repositories (data-access layer)
    # ------------------------------------------------------------------
    user_repo = UserRepository(db=db, logger=logger)
    service_repo = ServiceRepository(db=db, logger=logger)
    loyalty_repo = LoyaltyRepository(db=db, logger=logger)
    discount_repo = DiscountConfigRepository(db=db, logger=logger)
    catalog_repo = CatalogRepository(db=db, logger=logger)

    # ------------------------------------------------------------------
    # 2. Session protocol
    # ------------------------------------------------------------------
    profile_loader = ProfileLoader(
        users=user_repo,
        store=store,
        config=config,
        logger=logger,
    )
    session_resolver = SessionResolver(
        db=db,
        store=store,
        loader=profile_loader,
        state=state,
        config=config,
        logger=logger,
    )
    auth_service = AuthService(
        db=db,
        store=store,
        loader=profile_loader,
        resolver=session_resolver,
        state=state,
        users=user_repo,
        config=config,
        logger=logger,
    )

    # ------------------------------------------------------------------
    # 3. Data services
    # ------------------------------------------------------------------
    user_service = UserService(
        repo=user_repo,
        db=db,
        config=config,
        logger=logger,
    )
    service_request_service = ServiceRequestService(
        repo=service_repo,
        catalog=catalog_repo,
        logger=logger,
    )
    bonification_service = BonificationService(
        loyalty=loyalty_repo,
        discounts=discount_repo,
        services=service_repo,
        config=config,
        logger=logger,
    )
    catalog_service = CatalogService(
        catalog=catalog_repo,
        services=service_repo,
        users=user_repo,
        logger=logger,
    )
    report_service = ReportService(
        services=service_request_service,
        logger=logger,
    )

    return ServiceContainer(
        profile_loader=profile_loader,
        session_resolver=session_resolver,
        auth_service=auth_service,
        user_service=user_service,
        service_request_service=service_request_service,
        bonification_service=bonification_service,
        catalog_service=catalog_service,
        report_service=report_service,
    )
