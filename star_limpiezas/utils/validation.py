"""
Client-side Input Validation.

Required-field checks run immediately before a remote write.  Messages
are the Spanish texts shown by the app.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Optional, Union

from pydantic import BaseModel

from star_limpiezas.models.auth_models import ValidationResult

__all__ = [
    "ACCESS_DENIED",
    "PASSWORD_TOO_SHORT",
    "validate_email",
    "validate_password",
    "validate_service_data",
    "validate_user_data",
]

ACCESS_DENIED: str = "No tienes permisos para realizar esta acción."
PASSWORD_TOO_SHORT: str = "La contraseña debe tener al menos {min_length} caracteres."

# Strict form used on the login screen.
_EMAIL_RE: re.Pattern[str] = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# Lenient form used when an administrator edits user data.
_LOOSE_EMAIL_RE: re.Pattern[str] = re.compile(r"\S+@\S+\.\S+")

FormData = Union[Mapping[str, object], BaseModel]


def _as_mapping(data: FormData) -> Mapping[str, object]:
    if isinstance(data, BaseModel):
        return data.model_dump()
    return data


def _text(data: Mapping[str, object], key: str) -> str:
    value = data.get(key)
    return str(value).strip() if value is not None else ""


def validate_email(email: Optional[str]) -> ValidationResult:
    """Check an email address is present and well formed."""
    if not email:
        return ValidationResult(is_valid=False, error_message="El email es requerido")
    if not _EMAIL_RE.match(email.strip()):
        return ValidationResult(is_valid=False, error_message="Formato de email inválido")
    return ValidationResult(is_valid=True)


def validate_password(password: Optional[str], min_length: int = 6) -> ValidationResult:
    """Check a password is present and at least *min_length* characters."""
    if not password:
        return ValidationResult(is_valid=False, error_message="La contraseña es requerida")
    if len(password) < min_length:
        return ValidationResult(
            is_valid=False,
            error_message=PASSWORD_TOO_SHORT.format(min_length=min_length),
        )
    return ValidationResult(is_valid=True)


def validate_service_data(data: FormData) -> list[str]:
    """Return the list of problems with a service request; empty when valid."""
    values = _as_mapping(data)
    errors: list[str] = []
    if not _text(values, "service_name"):
        errors.append("El nombre del servicio es obligatorio")
    if not values.get("assigned_date"):
        errors.append("La fecha asignada es obligatoria")
    if not values.get("user_id"):
        errors.append("El usuario es obligatorio")
    return errors


def validate_user_data(data: FormData) -> list[str]:
    """Return the list of problems with user data; empty when valid."""
    values = _as_mapping(data)
    errors: list[str] = []
    if not _text(values, "name"):
        errors.append("El nombre es obligatorio")
    email = _text(values, "email")
    if not email:
        errors.append("El email es obligatorio")
    elif not _LOOSE_EMAIL_RE.search(email):
        errors.append("El email no tiene un formato válido")
    return errors
