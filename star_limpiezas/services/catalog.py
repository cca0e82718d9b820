"""
Catalog Service.

Locations, bookable date windows and the home dashboard counters.
"""

from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Optional

from star_limpiezas.logger import StructuredLogger
from star_limpiezas.models.loyalty import AvailableDate, Location
from star_limpiezas.models.service_models import DashboardStats, ServiceResult
from star_limpiezas.models.user import UserProfile
from star_limpiezas.repositories.catalog_repository import CatalogRepository
from star_limpiezas.repositories.service_repository import ServiceRepository
from star_limpiezas.repositories.user_repository import UserRepository
from star_limpiezas.services.base_service import BaseService
from star_limpiezas.utils.audit import log_audit_event


class CatalogService(BaseService):
    """Service layer for ``location``, ``available_dates`` and dashboard totals."""

    def __init__(
        self,
        catalog: CatalogRepository,
        services: ServiceRepository,
        users: UserRepository,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._catalog = catalog
        self._services = services
        self._users = users

    # ------------------------------------------------------------------
    # Locations
    # ------------------------------------------------------------------

    def get_locations(self) -> ServiceResult[list[Location]]:
        try:
            return ServiceResult(success=True, data=self._catalog.list_locations())
        except Exception as exc:
            return self._backend_failure("Fetching locations", exc)

    def create_location(
        self,
        name: str,
        actor: Optional[UserProfile],
    ) -> ServiceResult[Location]:
        denied = self._denied(actor, "canEditServices")
        if denied is not None:
            return denied
        assert actor is not None
        if not name or not name.strip():
            return ServiceResult(
                success=False, error="El nombre de la ubicación es obligatorio", status_code=400,
            )
        try:
            created = self._catalog.insert_location(name.strip())
        except Exception as exc:
            return self._backend_failure("Creating location", exc)
        log_audit_event(
            logger=self._logger,
            action="CREATE",
            entity_type="Location",
            entity_id=str(created.id),
            user_id=actor.id,
            details={"location": created.location},
        )
        return ServiceResult(success=True, data=created, status_code=201)

    # ------------------------------------------------------------------
    # Available dates
    # ------------------------------------------------------------------

    def get_available_dates(
        self,
        service: Optional[str] = None,
    ) -> ServiceResult[list[AvailableDate]]:
        try:
            return ServiceResult(success=True, data=self._catalog.list_available_dates(service))
        except Exception as exc:
            return self._backend_failure("Fetching available dates", exc)

    def create_available_date(
        self,
        service: str,
        start_date: date,
        end_date: date,
        actor: Optional[UserProfile],
    ) -> ServiceResult[AvailableDate]:
        """Open a booking window for *service*; both ends inclusive."""
        denied = self._denied(actor, "canEditServices")
        if denied is not None:
            return denied
        assert actor is not None
        if not service or not service.strip():
            return ServiceResult(
                success=False, error="El servicio es obligatorio", status_code=400,
            )
        if end_date < start_date:
            return ServiceResult(
                success=False,
                error="La fecha de fin no puede ser anterior a la de inicio",
                status_code=400,
            )
        try:
            created = self._catalog.insert_available_date({
                "service": service.strip(),
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
            })
        except Exception as exc:
            return self._backend_failure("Creating available date", exc)
        log_audit_event(
            logger=self._logger,
            action="CREATE",
            entity_type="AvailableDate",
            entity_id=str(created.id),
            user_id=actor.id,
            details={"service": created.service},
        )
        return ServiceResult(success=True, data=created, status_code=201)

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def get_dashboard_stats(self) -> ServiceResult[DashboardStats]:
        """Totals for services, users and locations, plus services per status."""
        try:
            total_services = self._services.count()
            total_users = self._users.count()
            total_locations = self._catalog.count_locations()
            by_status = Counter(self._services.list_statuses())
        except Exception as exc:
            return self._backend_failure("Fetching dashboard stats", exc)

        return ServiceResult(
            success=True,
            data=DashboardStats(
                total_services=total_services,
                total_users=total_users,
                total_locations=total_locations,
                services_by_status=dict(by_status),
            ),
        )
