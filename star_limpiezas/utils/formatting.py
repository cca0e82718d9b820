"""Display formatting for dates, statuses, shifts and roles."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

from star_limpiezas.models.enums import ServiceStatus, Shift, UserRole

__all__ = [
    "INVALID_DATE",
    "format_date",
    "format_datetime",
    "get_role_display_name",
    "get_shift_display_name",
    "get_status_display_name",
]

INVALID_DATE: str = "Fecha inválida"

_STATUS_NAMES: dict[str, str] = {
    ServiceStatus.PENDING: "Pendiente",
    ServiceStatus.CONFIRMED: "Confirmado",
    ServiceStatus.CANCELLED: "Cancelado",
    ServiceStatus.COMPLETED: "Completado",
}

_SHIFT_NAMES: dict[str, str] = {
    Shift.MORNING: "Mañana",
    Shift.AFTERNOON: "Tarde",
}

_ROLE_NAMES: dict[str, str] = {
    UserRole.ADMIN: "Administrador",
    UserRole.USER: "Usuario",
}

DateLike = Union[str, date, datetime, None]


def _to_datetime(value: DateLike) -> datetime:
    """Coerce *value* to ``datetime``.

    Raises:
        ValueError: If *value* is empty or not an ISO-8601 string.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not value:
        raise ValueError("empty date")
    text = str(value).strip().replace("Z", "+00:00")
    return datetime.fromisoformat(text)


def format_date(value: DateLike) -> str:
    """``dd/mm/yyyy``, or ``"Fecha inválida"`` when *value* cannot be parsed."""
    try:
        return _to_datetime(value).strftime("%d/%m/%Y")
    except (TypeError, ValueError):
        return INVALID_DATE


def format_datetime(value: DateLike) -> str:
    """``dd/mm/yyyy HH:MM``, or ``"Fecha inválida"``."""
    try:
        return _to_datetime(value).strftime("%d/%m/%Y %H:%M")
    except (TypeError, ValueError):
        return INVALID_DATE


def get_status_display_name(status: Optional[str]) -> str:
    if status is None:
        return ""
    return _STATUS_NAMES.get(status, str(status))


def get_shift_display_name(shift: Optional[str]) -> str:
    if shift is None:
        return ""
    return _SHIFT_NAMES.get(shift, str(shift))


def get_role_display_name(role: Optional[str]) -> str:
    """Unknown roles display as the least-privileged one."""
    return _ROLE_NAMES.get(role or "", _ROLE_NAMES[UserRole.USER])
