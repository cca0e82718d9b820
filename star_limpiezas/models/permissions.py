"""
Role Permission Table.

Static mapping from role to named capability booleans.  Every role has
an entry; lookups for anything else resolve to the ``user`` row.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional

from star_limpiezas.models.enums import UserRole

PERMISSION_NAMES: tuple[str, ...] = (
    "canManageUsers",
    "canCreateServices",
    "canConfirmServices",
    "canCancelServices",
    "canEditServices",
    "canManageBonuses",
    "canViewAllReports",
    "canCreateBonuses",
    "canModifyBonuses",
)

PERMISSIONS: Mapping[UserRole, Mapping[str, bool]] = MappingProxyType({
    UserRole.ADMIN: MappingProxyType({name: True for name in PERMISSION_NAMES}),
    UserRole.USER: MappingProxyType({
        "canManageUsers": False,
        "canCreateServices": True,
        "canConfirmServices": False,
        "canCancelServices": False,
        "canEditServices": False,
        "canManageBonuses": False,
        "canViewAllReports": False,
        "canCreateBonuses": False,
        "canModifyBonuses": False,
    }),
})


def permissions_for(role: Optional[str]) -> Mapping[str, bool]:
    """Return the permission row for *role*, defaulting to ``user``."""
    if role is not None:
        for known in PERMISSIONS:
            if known == role:
                return PERMISSIONS[known]
    return PERMISSIONS[UserRole.USER]


def role_has_permission(role: Optional[str], permission: str) -> bool:
    """``True`` when *role* grants *permission*; unknown names are ``False``."""
    return permissions_for(role).get(permission, False)
