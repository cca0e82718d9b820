"""
String Helpers.

Small text utilities shared by the auth and data layers.
"""

from __future__ import annotations

import re
from typing import Optional

__all__ = ["email_local_part", "sanitize_postgrest_value"]

# Letters, digits, whitespace, hyphen, '@' and accented Latin characters
# (U+00C0..U+024F) survive; PostgREST operators and wildcards do not.
_POSTGREST_UNSAFE_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9\s\-@\u00C0-\u024F]")


def sanitize_postgrest_value(value: str) -> str:
    """Strip characters unsafe for PostgREST filter interpolation.

    Parameters
    ----------
    value:
        The raw user-supplied search string.

    Returns
    -------
    str
        A string safe to embed in an ``or_`` / ``ilike`` filter
        expression.  ``.``, ``,``, ``(``, ``)``, ``%``, ``_``, ``\\`` and
        ``:`` are removed.
    """
    return _POSTGREST_UNSAFE_RE.sub("", value).strip()


def email_local_part(email: Optional[str]) -> str:
    """Return the part of *email* before ``@``, or ``""``."""
    if not email:
        return ""
    return email.split("@", 1)[0].strip()
