"""
Base Service Class.

Standardizes the logger pattern for all services and the conversion of
backend failures into ``ServiceResult`` envelopes.
"""

from __future__ import annotations

from typing import Optional

from star_limpiezas.logger import StructuredLogger
from star_limpiezas.models.service_models import ServiceResult
from star_limpiezas.models.user import UserProfile
from star_limpiezas.models.permissions import role_has_permission
from star_limpiezas.utils.validation import ACCESS_DENIED

OFFLINE_MESSAGE: str = "Error de conexión. Verifica tu internet."


class BaseService:
    """Base class for all service classes. Provides a logger."""

    def __init__(self, logger: StructuredLogger) -> None:
        self._logger: StructuredLogger = logger

    @staticmethod
    def _forbidden() -> ServiceResult:
        return ServiceResult(success=False, error=ACCESS_DENIED, status_code=403)

    @classmethod
    def _denied(cls, actor: Optional[UserProfile], permission: str) -> Optional[ServiceResult]:
        """Return a 403 result unless *actor* holds *permission*."""
        if actor is not None and role_has_permission(actor.role, permission):
            return None
        return cls._forbidden()

    def _backend_failure(self, operation: str, exc: Exception) -> ServiceResult:
        """Translate a repository exception into a failed result.

        ``RuntimeError`` from ``DatabaseManager.supabase`` means no backend
        is configured (503); anything else is a backend error (500).
        """
        if isinstance(exc, RuntimeError):
            self._logger.warning("%s skipped: backend unavailable (%s).", operation, exc)
            return ServiceResult(success=False, error=OFFLINE_MESSAGE, status_code=503)
        self._logger.error("%s failed: %s", operation, exc)
        return ServiceResult(success=False, error=f"{operation}: {exc}", status_code=500)
