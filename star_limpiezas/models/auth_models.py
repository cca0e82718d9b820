"""
Authentication Models.

Pydantic models and enumerations for the contracts between
``AuthService`` and its callers, plus the session snapshot that is
mirrored into the local cache.

Every auth operation returns a structured ``AuthResult`` rather than
raising, so the UI layer only ever inspects ``success`` and
``error_code``.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from star_limpiezas.models.enums import UserRole
from star_limpiezas.models.user import UserProfile


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

class AuthErrorCode(StrEnum):
    """Authentication error categories surfaced to the UI layer."""

    INVALID_CREDENTIALS = "invalid_credentials"
    EMAIL_NOT_VERIFIED = "email_not_verified"
    EMAIL_ALREADY_EXISTS = "email_already_exists"
    SIGNUP_DISABLED = "signup_disabled"
    WEAK_PASSWORD = "weak_password"
    NETWORK_ERROR = "network_error"
    VALIDATION_ERROR = "validation_error"
    NO_PROFILE = "no_profile"
    UNKNOWN_ERROR = "unknown_error"


ERROR_MESSAGES: dict[AuthErrorCode, str] = {
    AuthErrorCode.INVALID_CREDENTIALS: "Credenciales incorrectas. Verifica tu email y contraseña.",
    AuthErrorCode.EMAIL_NOT_VERIFIED: "Debes verificar tu email antes de iniciar sesión.",
    AuthErrorCode.EMAIL_ALREADY_EXISTS: "Este email ya está registrado.",
    AuthErrorCode.SIGNUP_DISABLED: "El registro de usuarios está deshabilitado.",
    AuthErrorCode.WEAK_PASSWORD: "La contraseña es demasiado débil.",
    AuthErrorCode.NETWORK_ERROR: "Error de conexión. Verifica tu internet.",
    AuthErrorCode.VALIDATION_ERROR: "Por favor completa todos los campos correctamente.",
    AuthErrorCode.NO_PROFILE: "No hay perfil de usuario cargado.",
    AuthErrorCode.UNKNOWN_ERROR: "Ocurrió un error inesperado.",
}


# Substrings of Supabase Auth error messages (lower-cased) and the
# category they map to.  First match wins.
SUPABASE_ERROR_MAP: dict[str, AuthErrorCode] = {
    "invalid login credentials": AuthErrorCode.INVALID_CREDENTIALS,
    "invalid_credentials": AuthErrorCode.INVALID_CREDENTIALS,
    "invalid_grant": AuthErrorCode.INVALID_CREDENTIALS,
    "email not confirmed": AuthErrorCode.EMAIL_NOT_VERIFIED,
    "email_not_confirmed": AuthErrorCode.EMAIL_NOT_VERIFIED,
    "already registered": AuthErrorCode.EMAIL_ALREADY_EXISTS,
    "user_already_exists": AuthErrorCode.EMAIL_ALREADY_EXISTS,
    "signups not allowed": AuthErrorCode.SIGNUP_DISABLED,
    "signup_disabled": AuthErrorCode.SIGNUP_DISABLED,
    "password should be": AuthErrorCode.WEAK_PASSWORD,
    "weak_password": AuthErrorCode.WEAK_PASSWORD,
}


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class ValidationResult(BaseModel):
    """Result of a single client-side field validation check."""

    is_valid: bool
    error_message: Optional[str] = None


class AuthResult(BaseModel):
    """Unified response for every ``AuthService`` operation.

    Attributes
    ----------
    success:
        ``True`` when the operation completed without error.
    error_code:
        Structured error category (``None`` on success).
    error_message:
        Human-readable message for the user (Spanish, as shown in the app).
    user_id, email, name, role:
        Identity of the affected user when known.
    requires_email_confirmation:
        Set by ``sign_up`` when the backend created the account but did
        not open a session (confirmation email pending).
    """

    success: bool
    error_code: Optional[AuthErrorCode] = None
    error_message: Optional[str] = None
    user_id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[UserRole] = None
    requires_email_confirmation: bool = False

    @classmethod
    def failure(cls, code: AuthErrorCode, message: Optional[str] = None) -> "AuthResult":
        return cls(
            success=False,
            error_code=code,
            error_message=message or ERROR_MESSAGES[code],
        )


# ---------------------------------------------------------------------------
# Session snapshot (mirrors the Supabase Auth session)
# ---------------------------------------------------------------------------

class SessionUser(BaseModel):
    """Identity embedded in a session."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    email: Optional[str] = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)
    email_confirmed_at: Optional[str] = None


class SessionSnapshot(BaseModel):
    """Serializable copy of a backend-issued session.

    ``expires_at`` is a Unix timestamp in seconds, as issued by Supabase.
    """

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    access_token: str
    refresh_token: str
    expires_at: Optional[int] = None
    expires_in: Optional[int] = None
    token_type: str = "bearer"
    user: SessionUser

    @classmethod
    def from_sdk(cls, session: object) -> "SessionSnapshot":
        """Build a snapshot from an SDK session, a mapping or a snapshot.

        Raises:
            pydantic.ValidationError: If required token fields are missing.
        """
        if isinstance(session, SessionSnapshot):
            return session
        if isinstance(session, Mapping):
            return cls.model_validate(dict(session))
        dump = getattr(session, "model_dump", None)
        if callable(dump):
            return cls.model_validate(dump(mode="json"))
        return cls.model_validate(session, from_attributes=True)

    @property
    def user_id(self) -> str:
        return self.user.id


class CacheEnvelope(BaseModel):
    """Versioned wrapper around every blob written to the local store."""

    version: int
    payload: dict[str, Any]


class ResolvedAuth(BaseModel):
    """Outcome of startup session resolution."""

    session: Optional[SessionSnapshot] = None
    profile: Optional[UserProfile] = None

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None
