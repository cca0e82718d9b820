"""Shared utility functions for the Star Limpiezas client core.

Convenience re-exports so consumers can ``from star_limpiezas.utils import
format_date`` while full module imports keep working.
"""

from star_limpiezas.utils.audit import AuditEvent, log_audit_event
from star_limpiezas.utils.formatting import (
    format_date,
    format_datetime,
    get_role_display_name,
    get_shift_display_name,
    get_status_display_name,
)
from star_limpiezas.utils.string_helpers import email_local_part, sanitize_postgrest_value
from star_limpiezas.utils.timeouts import run_with_timeout
from star_limpiezas.utils.validation import (
    validate_email,
    validate_password,
    validate_service_data,
    validate_user_data,
)

__all__ = [
    "AuditEvent",
    "email_local_part",
    "format_date",
    "format_datetime",
    "get_role_display_name",
    "get_shift_display_name",
    "get_status_display_name",
    "log_audit_event",
    "run_with_timeout",
    "sanitize_postgrest_value",
    "validate_email",
    "validate_password",
    "validate_service_data",
    "validate_user_data",
]
