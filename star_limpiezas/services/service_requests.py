"""
Service Request Service.

Listing, booking and lifecycle changes for cleaning service requests.

RBAC model:
    - Admins see and filter every request; anyone else is scoped to their
      own ``user_id`` regardless of the filters they pass.
    - Each target status has its own permission (see
      ``STATUS_PERMISSIONS``).
"""

from __future__ import annotations

from typing import Optional

from star_limpiezas.logger import StructuredLogger
from star_limpiezas.models.enums import ServiceStatus, UserRole
from star_limpiezas.models.loyalty import AvailableService, Location
from star_limpiezas.models.service_models import (
    ServiceFilters,
    ServiceInput,
    ServiceRecord,
    ServiceResult,
)
from star_limpiezas.models.user import UserProfile
from star_limpiezas.repositories.catalog_repository import CatalogRepository
from star_limpiezas.repositories.service_repository import ServiceRepository
from star_limpiezas.services.base_service import BaseService
from star_limpiezas.utils.audit import log_audit_event
from star_limpiezas.utils.validation import validate_service_data

STATUS_PERMISSIONS: dict[ServiceStatus, str] = {
    ServiceStatus.CONFIRMED: "canConfirmServices",
    ServiceStatus.CANCELLED: "canCancelServices",
    ServiceStatus.COMPLETED: "canEditServices",
    ServiceStatus.PENDING: "canEditServices",
}


def scope_filters(
    filters: Optional[ServiceFilters],
    actor: UserProfile,
) -> ServiceFilters:
    """Force non-admin actors onto their own rows."""
    scoped = filters.model_copy() if filters is not None else ServiceFilters()
    if actor.role != UserRole.ADMIN:
        scoped.user_id = actor.id
    return scoped


class ServiceRequestService(BaseService):
    """Service layer for ``user_services``."""

    def __init__(
        self,
        repo: ServiceRepository,
        catalog: CatalogRepository,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._repo = repo
        self._catalog = catalog

    def get_services(
        self,
        actor: Optional[UserProfile],
        filters: Optional[ServiceFilters] = None,
    ) -> ServiceResult[list[ServiceRecord]]:
        """Requests visible to *actor*, latest ``assigned_date`` first."""
        if actor is None:
            return self._forbidden()
        try:
            services = self._repo.find(scope_filters(filters, actor))
        except Exception as exc:
            return self._backend_failure("Fetching services", exc)
        return ServiceResult(success=True, data=services)

    def create_service(
        self,
        data: ServiceInput,
        actor: Optional[UserProfile],
    ) -> ServiceResult[ServiceRecord]:
        """Book a new request.  It always starts as ``pending``."""
        denied = self._denied(actor, "canCreateServices")
        if denied is not None:
            return denied
        assert actor is not None

        payload = data.model_dump(exclude_none=True, mode="json")
        if actor.role != UserRole.ADMIN or not payload.get("user_id"):
            payload["user_id"] = actor.id

        errors = validate_service_data(payload)
        if errors:
            return ServiceResult(success=False, error="; ".join(errors), status_code=400)

        try:
            created = self._repo.insert(payload)
        except Exception as exc:
            return self._backend_failure("Creating service", exc)

        log_audit_event(
            logger=self._logger,
            action="CREATE",
            entity_type="Service",
            entity_id=str(created.id),
            user_id=actor.id,
            details={
                "service_name": payload.get("service_name"),
                "assigned_date": payload.get("assigned_date"),
                "client_id": payload["user_id"],
            },
        )
        return ServiceResult(success=True, data=created, status_code=201)

    def update_service_status(
        self,
        service_id: int,
        status: str,
        actor: Optional[UserProfile],
    ) -> ServiceResult[ServiceRecord]:
        """Move a request to *status*.

        Confirming needs ``canConfirmServices``, cancelling
        ``canCancelServices``; completing or reopening needs
        ``canEditServices``.
        """
        try:
            target = ServiceStatus(status)
        except ValueError:
            return ServiceResult(
                success=False,
                error=f"Estado inválido: '{status}'.",
                status_code=400,
            )

        denied = self._denied(actor, STATUS_PERMISSIONS[target])
        if denied is not None:
            return denied
        assert actor is not None

        try:
            updated = self._repo.update(service_id, {"status": str(target)})
        except Exception as exc:
            return self._backend_failure("Updating service status", exc)
        if updated is None:
            return self._not_found()

        log_audit_event(
            logger=self._logger,
            action=f"STATUS_{target.name}",
            entity_type="Service",
            entity_id=str(service_id),
            user_id=actor.id,
            details={"status": str(target)},
        )
        return ServiceResult(success=True, data=updated)

    def update_service(
        self,
        service_id: int,
        changes: ServiceInput,
        actor: Optional[UserProfile],
    ) -> ServiceResult[ServiceRecord]:
        denied = self._denied(actor, "canEditServices")
        if denied is not None:
            return denied
        assert actor is not None

        payload = changes.model_dump(exclude_unset=True, mode="json")
        if not payload:
            return ServiceResult(success=False, error="No hay cambios.", status_code=400)

        try:
            updated = self._repo.update(service_id, payload)
        except Exception as exc:
            return self._backend_failure("Updating service", exc)
        if updated is None:
            return self._not_found()

        log_audit_event(
            logger=self._logger,
            action="UPDATE",
            entity_type="Service",
            entity_id=str(service_id),
            user_id=actor.id,
            details={"fields": ", ".join(sorted(payload))},
        )
        return ServiceResult(success=True, data=updated)

    def delete_service(
        self,
        service_id: int,
        actor: Optional[UserProfile],
    ) -> ServiceResult[None]:
        denied = self._denied(actor, "canEditServices")
        if denied is not None:
            return denied
        assert actor is not None

        try:
            self._repo.delete(service_id)
        except Exception as exc:
            return self._backend_failure("Deleting service", exc)

        log_audit_event(
            logger=self._logger,
            action="DELETE",
            entity_type="Service",
            entity_id=str(service_id),
            user_id=actor.id,
        )
        return ServiceResult(success=True)

    # ------------------------------------------------------------------
    # Catalogue lookups
    # ------------------------------------------------------------------

    def get_available_services(self) -> ServiceResult[list[AvailableService]]:
        try:
            rows = self._repo.list_catalog()
        except Exception as exc:
            return self._backend_failure("Fetching available services", exc)
        return ServiceResult(
            success=True, data=[AvailableService.model_validate(row) for row in rows],
        )

    def get_locations(self) -> ServiceResult[list[Location]]:
        try:
            return ServiceResult(success=True, data=self._catalog.list_locations())
        except Exception as exc:
            return self._backend_failure("Fetching locations", exc)

    @staticmethod
    def _not_found() -> ServiceResult:
        return ServiceResult(success=False, error="Servicio no encontrado.", status_code=404)
