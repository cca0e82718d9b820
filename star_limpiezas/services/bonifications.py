"""
Bonification Service.

Loyalty points and the discount configurations they unlock.

Loyalty records are managed by administrators (``canManageBonuses``); a
client without that permission can only read their own.  Discount
configurations need ``canCreateBonuses`` to create and
``canModifyBonuses`` to change, toggle or delete.
"""

from __future__ import annotations

from typing import Optional

from star_limpiezas.config import AppConfig
from star_limpiezas.logger import StructuredLogger
from star_limpiezas.models.loyalty import (
    ApplicableDiscount,
    DiscountConfig,
    DiscountInput,
    LoyaltyInput,
    LoyaltyRecord,
    LoyaltySummary,
)
from star_limpiezas.models.permissions import role_has_permission
from star_limpiezas.models.service_models import ServiceResult
from star_limpiezas.models.user import UserProfile
from star_limpiezas.repositories.loyalty_repository import (
    DiscountConfigRepository,
    LoyaltyRepository,
)
from star_limpiezas.repositories.service_repository import ServiceRepository
from star_limpiezas.services.base_service import BaseService
from star_limpiezas.utils.audit import log_audit_event

REQUIRED_FIELDS: str = "Por favor completa los campos requeridos"
REQUIRED_FIELDS_CORRECTLY: str = "Por favor completa los campos requeridos correctamente"


def best_discount(
    configs: list[DiscountConfig],
    service_type: str,
    points: int,
) -> ApplicableDiscount:
    """Highest active discount for *service_type* that *points* unlock."""
    eligible = [
        config for config in configs
        if config.active
        and config.service_type == service_type
        and config.services_required <= points
    ]
    if not eligible:
        return ApplicableDiscount()
    best = max(eligible, key=lambda config: config.discount_percentage)
    return ApplicableDiscount(discount=best.discount_percentage, config=best)


class BonificationService(BaseService):
    """Loyalty programmes and discount configurations."""

    def __init__(
        self,
        loyalty: LoyaltyRepository,
        discounts: DiscountConfigRepository,
        services: ServiceRepository,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._loyalty = loyalty
        self._discounts = discounts
        self._services = services
        self._points_per_service: int = config.LOYALTY_POINTS_PER_SERVICE

    # ------------------------------------------------------------------
    # Loyalty records
    # ------------------------------------------------------------------

    def get_loyalty_programs(
        self,
        actor: Optional[UserProfile],
        user_id: Optional[str] = None,
    ) -> ServiceResult[list[LoyaltyRecord]]:
        """Loyalty records, most recently updated first.

        Without ``canManageBonuses`` only the actor's own records are
        returned, whatever *user_id* says.
        """
        if actor is None:
            return self._forbidden()
        if not role_has_permission(actor.role, "canManageBonuses"):
            user_id = actor.id
        try:
            return ServiceResult(success=True, data=self._loyalty.get_all(user_id))
        except Exception as exc:
            return self._backend_failure("Fetching loyalty programs", exc)

    def create_loyalty_program(
        self,
        data: LoyaltyInput,
        actor: Optional[UserProfile],
    ) -> ServiceResult[LoyaltyRecord]:
        denied = self._denied(actor, "canManageBonuses")
        if denied is not None:
            return denied
        assert actor is not None
        if not data.user_id or not (data.service_type or "").strip():
            return ServiceResult(success=False, error=REQUIRED_FIELDS, status_code=400)

        try:
            created = self._loyalty.insert(data.model_dump())
        except Exception as exc:
            return self._backend_failure("Creating loyalty program", exc)

        log_audit_event(
            logger=self._logger,
            action="CREATE",
            entity_type="CustomerLoyalty",
            entity_id=str(created.id),
            user_id=actor.id,
            details={"client_id": data.user_id, "points": data.points},
        )
        return ServiceResult(success=True, data=created, status_code=201)

    def update_loyalty_program(
        self,
        loyalty_id: int,
        data: LoyaltyInput,
        actor: Optional[UserProfile],
    ) -> ServiceResult[LoyaltyRecord]:
        denied = self._denied(actor, "canManageBonuses")
        if denied is not None:
            return denied
        assert actor is not None
        if not data.user_id or not (data.service_type or "").strip():
            return ServiceResult(success=False, error=REQUIRED_FIELDS, status_code=400)

        try:
            updated = self._loyalty.update(loyalty_id, data.model_dump())
        except Exception as exc:
            return self._backend_failure("Updating loyalty program", exc)
        if updated is None:
            return self._not_found("Programa de fidelidad")

        log_audit_event(
            logger=self._logger,
            action="UPDATE",
            entity_type="CustomerLoyalty",
            entity_id=str(loyalty_id),
            user_id=actor.id,
            details={"points": data.points},
        )
        return ServiceResult(success=True, data=updated)

    def delete_loyalty_program(
        self,
        loyalty_id: int,
        actor: Optional[UserProfile],
    ) -> ServiceResult[None]:
        denied = self._denied(actor, "canManageBonuses")
        if denied is not None:
            return denied
        assert actor is not None
        try:
            self._loyalty.delete(loyalty_id)
        except Exception as exc:
            return self._backend_failure("Deleting loyalty program", exc)
        log_audit_event(
            logger=self._logger,
            action="DELETE",
            entity_type="CustomerLoyalty",
            entity_id=str(loyalty_id),
            user_id=actor.id,
        )
        return ServiceResult(success=True)

    # ------------------------------------------------------------------
    # Discount configurations
    # ------------------------------------------------------------------

    def get_discount_configs(self) -> ServiceResult[list[DiscountConfig]]:
        try:
            return ServiceResult(success=True, data=self._discounts.get_all())
        except Exception as exc:
            return self._backend_failure("Fetching discount configs", exc)

    def create_discount_config(
        self,
        data: DiscountInput,
        actor: Optional[UserProfile],
    ) -> ServiceResult[DiscountConfig]:
        denied = self._denied(actor, "canCreateBonuses")
        if denied is not None:
            return denied
        assert actor is not None
        invalid = self._check_discount(data)
        if invalid is not None:
            return invalid

        try:
            created = self._discounts.insert(data.model_dump())
        except Exception as exc:
            return self._backend_failure("Creating discount config", exc)

        log_audit_event(
            logger=self._logger,
            action="CREATE",
            entity_type="DiscountConfig",
            entity_id=str(created.id),
            user_id=actor.id,
            details={
                "service_type": data.service_type,
                "discount_percentage": data.discount_percentage,
            },
        )
        return ServiceResult(success=True, data=created, status_code=201)

    def update_discount_config(
        self,
        config_id: int,
        data: DiscountInput,
        actor: Optional[UserProfile],
    ) -> ServiceResult[DiscountConfig]:
        denied = self._denied(actor, "canModifyBonuses")
        if denied is not None:
            return denied
        assert actor is not None
        invalid = self._check_discount(data)
        if invalid is not None:
            return invalid
        return self._write_discount(config_id, data.model_dump(), actor, "UPDATE")

    def toggle_discount_config(
        self,
        config_id: int,
        actor: Optional[UserProfile],
    ) -> ServiceResult[DiscountConfig]:
        """Flip the ``active`` flag of a configuration."""
        denied = self._denied(actor, "canModifyBonuses")
        if denied is not None:
            return denied
        assert actor is not None

        try:
            current = self._discounts.get_by_id(config_id)
        except Exception as exc:
            return self._backend_failure("Fetching discount config", exc)
        if current is None:
            return self._not_found("Descuento")
        return self._write_discount(config_id, {"active": not current.active}, actor, "TOGGLE")

    def delete_discount_config(
        self,
        config_id: int,
        actor: Optional[UserProfile],
    ) -> ServiceResult[None]:
        denied = self._denied(actor, "canModifyBonuses")
        if denied is not None:
            return denied
        assert actor is not None
        try:
            self._discounts.delete(config_id)
        except Exception as exc:
            return self._backend_failure("Deleting discount config", exc)
        log_audit_event(
            logger=self._logger,
            action="DELETE",
            entity_type="DiscountConfig",
            entity_id=str(config_id),
            user_id=actor.id,
        )
        return ServiceResult(success=True)

    # ------------------------------------------------------------------
    # Points and discounts
    # ------------------------------------------------------------------

    def calculate_user_loyalty(self, user_id: str) -> ServiceResult[LoyaltySummary]:
        """Points earned from the user's completed services."""
        try:
            completed = self._services.count_completed(user_id)
        except Exception as exc:
            return self._backend_failure("Calculating loyalty", exc)
        return ServiceResult(
            success=True,
            data=LoyaltySummary(
                points=completed * self._points_per_service,
                services=completed,
            ),
        )

    def get_applicable_discount(
        self,
        user_id: str,
        service_type: str,
    ) -> ServiceResult[ApplicableDiscount]:
        """Best discount *user_id* has unlocked for *service_type*.

        Points come from the most recently updated loyalty record; a user
        with none has zero points.
        """
        try:
            records = self._loyalty.get_all(user_id)
            configs = self._discounts.get_all()
        except Exception as exc:
            return self._backend_failure("Fetching applicable discount", exc)
        points = records[0].points if records else 0
        return ServiceResult(success=True, data=best_discount(configs, service_type, points))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_discount(data: DiscountInput) -> Optional[ServiceResult]:
        if not data.service_type.strip() or data.discount_percentage <= 0:
            return ServiceResult(success=False, error=REQUIRED_FIELDS_CORRECTLY, status_code=400)
        return None

    def _write_discount(
        self,
        config_id: int,
        changes: dict[str, object],
        actor: UserProfile,
        action: str,
    ) -> ServiceResult[DiscountConfig]:
        try:
            updated = self._discounts.update(config_id, changes)
        except Exception as exc:
            return self._backend_failure("Updating discount config", exc)
        if updated is None:
            return self._not_found("Descuento")
        log_audit_event(
            logger=self._logger,
            action=action,
            entity_type="DiscountConfig",
            entity_id=str(config_id),
            user_id=actor.id,
            details={key: str(value) for key, value in changes.items()},
        )
        return ServiceResult(success=True, data=updated)

    @staticmethod
    def _not_found(entity: str) -> ServiceResult:
        return ServiceResult(success=False, error=f"{entity} no encontrado.", status_code=404)
