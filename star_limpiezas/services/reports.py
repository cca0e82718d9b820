"""
Report Service.

Service listings for the reports screen: client-side filtering, per-status
totals and Excel export.

Export layout
-------------
``Servicios``
    One header row, then one row per service with Spanish display names
    for status and shift and ``dd/mm/yyyy`` dates.
``Resumen``
    Two columns (metric, value) with the totals of ``calculate_stats``.
"""

from __future__ import annotations

from pathlib import Path
from typing import IO, Iterable, Optional, Union

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.worksheet.worksheet import Worksheet

from star_limpiezas.logger import StructuredLogger
from star_limpiezas.models.enums import ServiceStatus, UserRole
from star_limpiezas.models.service_models import (
    ReportStats,
    ServiceFilters,
    ServiceRecord,
    ServiceResult,
)
from star_limpiezas.models.user import UserProfile
from star_limpiezas.services.base_service import BaseService
from star_limpiezas.services.service_requests import ServiceRequestService
from star_limpiezas.utils.formatting import (
    format_date,
    format_datetime,
    get_shift_display_name,
    get_status_display_name,
)

SERVICES_SHEET: str = "Servicios"
SUMMARY_SHEET: str = "Resumen"

SERVICE_HEADERS: tuple[str, ...] = (
    "ID",
    "Servicio",
    "Cliente",
    "Fecha asignada",
    "Turno",
    "Horas",
    "Dirección",
    "Teléfono",
    "Ubicación",
    "Estado",
    "Notas",
    "Creado",
)

_HEADER_FONT = Font(bold=True)


def apply_filters(
    services: Iterable[ServiceRecord],
    filters: Optional[ServiceFilters],
    actor: Optional[UserProfile] = None,
) -> list[ServiceRecord]:
    """Filter already-fetched services.

    The service-name match is a case-insensitive substring and the date
    range is inclusive.  ``user_id`` is honoured only for admin actors.
    """
    services = list(services)
    if filters is None:
        return services

    needle = (filters.service_type or "").lower()
    by_user = filters.user_id if actor is not None and actor.role == UserRole.ADMIN else None

    result: list[ServiceRecord] = []
    for service in services:
        if filters.status and service.status != filters.status:
            continue
        if needle and needle not in (service.service_name or "").lower():
            continue
        day = service.assigned_day
        if filters.date_from and (day is None or day < filters.date_from):
            continue
        if filters.date_to and (day is None or day > filters.date_to):
            continue
        if by_user and service.user_id != by_user:
            continue
        result.append(service)
    return result


def calculate_stats(services: Iterable[ServiceRecord]) -> ReportStats:
    stats = ReportStats()
    for service in services:
        stats.total += 1
        if service.status == ServiceStatus.PENDING:
            stats.pending += 1
        elif service.status == ServiceStatus.CONFIRMED:
            stats.confirmed += 1
        elif service.status == ServiceStatus.CANCELLED:
            stats.cancelled += 1
        elif service.status == ServiceStatus.COMPLETED:
            stats.completed += 1
    return stats


class ReportService(BaseService):
    """Loads, filters, summarises and exports service listings."""

    def __init__(
        self,
        services: ServiceRequestService,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._services = services

    apply_filters = staticmethod(apply_filters)
    calculate_stats = staticmethod(calculate_stats)

    def load_report(
        self,
        actor: Optional[UserProfile],
        filters: Optional[ServiceFilters] = None,
    ) -> ServiceResult[tuple[list[ServiceRecord], ReportStats]]:
        """Fetch the actor's visible services, filter them and total them."""
        fetched = self._services.get_services(actor, filters)
        if not fetched.success:
            return ServiceResult(
                success=False, error=fetched.error, status_code=fetched.status_code,
            )
        rows = apply_filters(fetched.data or [], filters, actor)
        return ServiceResult(success=True, data=(rows, calculate_stats(rows)))

    def export_to_excel(
        self,
        services: list[ServiceRecord],
        destination: Union[str, Path, IO[bytes]],
    ) -> ServiceResult[int]:
        """Write *services* to an ``.xlsx`` workbook.

        Args:
            services: Rows to export, in display order.
            destination: File path or writable binary stream.

        Returns:
            ``ServiceResult`` whose ``data`` is the number of rows written.
        """
        workbook = Workbook()
        try:
            sheet: Worksheet = workbook.active
            sheet.title = SERVICES_SHEET
            self._write_services(sheet, services)
            self._write_summary(workbook.create_sheet(SUMMARY_SHEET), calculate_stats(services))
            workbook.save(destination)
        except (OSError, ValueError) as exc:
            self._logger.error("Excel export failed: %s", exc)
            return ServiceResult(
                success=False, error=f"No se pudo exportar el reporte: {exc}", status_code=500,
            )
        finally:
            workbook.close()

        self._logger.info(
            "Exported %d services to Excel.", len(services),
            extra={"event": "REPORT_EXPORTED"},
        )
        return ServiceResult(success=True, data=len(services))

    # ------------------------------------------------------------------
    # Sheet writers
    # ------------------------------------------------------------------

    @staticmethod
    def _write_services(sheet: Worksheet, services: list[ServiceRecord]) -> None:
        sheet.append(list(SERVICE_HEADERS))
        for cell in sheet[1]:
            cell.font = _HEADER_FONT
        for service in services:
            sheet.append([
                service.id,
                service.service_name or "",
                service.client_name,
                format_date(service.assigned_date) if service.assigned_date else "",
                get_shift_display_name(service.shift),
                service.hours or "",
                service.address or "",
                service.phone or "",
                service.location_name,
                get_status_display_name(service.status),
                service.notes or "",
                format_datetime(service.created_at) if service.created_at else "",
            ])

    @staticmethod
    def _write_summary(sheet: Worksheet, stats: ReportStats) -> None:
        sheet.append(["Métrica", "Valor"])
        for cell in sheet[1]:
            cell.font = _HEADER_FONT
        sheet.append(["Total de servicios", stats.total])
        sheet.append([get_status_display_name(ServiceStatus.PENDING), stats.pending])
        sheet.append([get_status_display_name(ServiceStatus.CONFIRMED), stats.confirmed])
        sheet.append([get_status_display_name(ServiceStatus.CANCELLED), stats.cancelled])
        sheet.append([get_status_display_name(ServiceStatus.COMPLETED), stats.completed])
