"""
User Management Service.

Administrative user operations: listing, searching, creating client
accounts, role changes and profile edits.

Architectural notes:
    - The ``users`` table is the only place a role lives.  This service's
      :meth:`UserService.update_user_role` is the single write path for
      it, and it requires ``canManageUsers``.
    - Auth accounts are created through the Supabase Auth admin API when a
      service-role key is configured, else through public sign-up on a
      separate client so the administrator stays signed in.  The
      matching ``users`` row is inserted right after; if that insert
      fails the orphaned auth account is deleted again (admin API only).
    - The password is never written to the ``users`` table.
"""

from __future__ import annotations

from typing import Optional

from star_limpiezas.config import AppConfig
from star_limpiezas.database import DatabaseManager
from star_limpiezas.logger import StructuredLogger
from star_limpiezas.models.enums import UserRole
from star_limpiezas.models.service_models import ServiceResult
from star_limpiezas.models.user import NewClient, ProfileUpdate, UserProfile, UserSummary
from star_limpiezas.repositories.user_repository import UserRepository
from star_limpiezas.services.base_service import BaseService
from star_limpiezas.utils.audit import log_audit_event
from star_limpiezas.utils.validation import validate_password, validate_user_data


class UserService(BaseService):
    """Service layer for user administration."""

    def __init__(
        self,
        repo: UserRepository,
        db: DatabaseManager,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._repo = repo
        self._db = db
        self._config = config

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_users(self) -> ServiceResult[list[UserProfile]]:
        """All users, newest first."""
        try:
            return ServiceResult(success=True, data=self._repo.get_all())
        except Exception as exc:
            return self._backend_failure("Fetching users", exc)

    def get_user_profile(self, user_id: str) -> ServiceResult[UserProfile]:
        try:
            profile = self._repo.get_by_id(user_id)
        except Exception as exc:
            return self._backend_failure("Fetching user profile", exc)
        if profile is None:
            return ServiceResult(success=False, error="Usuario no encontrado.", status_code=404)
        return ServiceResult(success=True, data=profile)

    def get_users_by_role(self, role: str) -> ServiceResult[list[UserSummary]]:
        """Users holding *role*, each with its ``total_services`` count."""
        try:
            validated_role = UserRole(role)
        except ValueError:
            return self._invalid_role(role)
        try:
            return ServiceResult(success=True, data=self._repo.get_summaries(role=validated_role))
        except Exception as exc:
            return self._backend_failure("Fetching users by role", exc)

    def search_users(
        self,
        query: str,
        role: Optional[str] = None,
    ) -> ServiceResult[list[UserSummary]]:
        """Users whose name, email or phone contains *query*.

        A blank *query* lists everyone (optionally of one *role*).
        """
        validated_role: Optional[UserRole] = None
        if role:
            try:
                validated_role = UserRole(role)
            except ValueError:
                return self._invalid_role(role)
        try:
            users = self._repo.get_summaries(role=validated_role, search=query)
            return ServiceResult(success=True, data=users)
        except Exception as exc:
            return self._backend_failure("Searching users", exc)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_client(
        self,
        data: NewClient,
        actor: Optional[UserProfile],
    ) -> ServiceResult[UserProfile]:
        """Create a client account with the ``user`` role.

        Args:
            data: Name, email and password are required.
            actor: The administrator performing the action.
        """
        denied = self._denied(actor, "canManageUsers")
        if denied is not None:
            return denied

        if not data.name.strip() or not data.email.strip() or not data.password:
            return ServiceResult(
                success=False,
                error="Nombre, email y contraseña son requeridos",
                status_code=400,
            )
        errors = validate_user_data(data)
        password_check = validate_password(data.password, self._config.MIN_PASSWORD_LENGTH)
        if not password_check.is_valid:
            errors.append(password_check.error_message or "")
        if errors:
            return ServiceResult(success=False, error="; ".join(errors), status_code=400)

        email = data.email.strip().lower()
        name = data.name.strip()

        # --- 1. Auth account ---
        metadata = {"name": name, "role": str(UserRole.USER)}
        try:
            admin = self._db.supabase_admin
            if admin is not None:
                response = admin.auth.admin.create_user({
                    "email": email,
                    "password": data.password,
                    "email_confirm": True,
                    "user_metadata": metadata,
                })
            else:
                # Public sign-up opens a session for the new user; keep it
                # off the administrator's client.
                response = self._db.isolated_client().auth.sign_up({
                    "email": email,
                    "password": data.password,
                    "options": {"data": metadata},
                })
        except Exception as exc:
            return self._backend_failure("Creating auth user", exc)

        user = getattr(response, "user", None)
        if user is None:
            return ServiceResult(
                success=False, error="No se pudo crear el usuario", status_code=500,
            )

        # --- 2. Profile row ---
        profile = UserProfile(
            id=user.id,
            name=name,
            email=email,
            phone=data.phone or None,
            address=data.address or None,
            role=UserRole.USER,
        )
        try:
            stored = self._repo.insert(profile)
        except Exception as exc:
            self._logger.error("Profile insert for new client %s failed: %s", user.id, exc)
            self._delete_orphaned_auth_user(user.id)
            return ServiceResult(
                success=False,
                error=f"No se pudo crear el perfil del cliente: {exc}",
                status_code=500,
            )

        # --- 3. Audit trail ---
        assert actor is not None
        log_audit_event(
            logger=self._logger,
            action="CREATE_CLIENT",
            entity_type="User",
            entity_id=user.id,
            user_id=actor.id,
            details={"email": email, "performed_by": actor.name},
        )
        return ServiceResult(success=True, data=stored, status_code=201)

    def update_user_role(
        self,
        user_id: str,
        new_role: str,
        actor: Optional[UserProfile],
    ) -> ServiceResult[UserProfile]:
        """Change a user's role.  The only code path that writes ``role``.

        Args:
            user_id: Target user id.
            new_role: ``"admin"`` or ``"user"``.
            actor: The administrator performing the change.
        """
        # --- 0. RBAC ---
        denied = self._denied(actor, "canManageUsers")
        if denied is not None:
            return denied
        assert actor is not None

        # --- 1. Validate the role string against the enum ---
        try:
            validated_role = UserRole(new_role)
        except ValueError:
            return self._invalid_role(new_role)

        # --- 2. Verify user exists ---
        try:
            user = self._repo.get_by_id(user_id)
        except Exception as exc:
            return self._backend_failure("Fetching user", exc)
        if user is None:
            return ServiceResult(success=False, error="Usuario no encontrado.", status_code=404)

        old_role = str(user.role)

        # --- 3. Write ---
        try:
            updated = self._repo.update_role(user_id, validated_role)
        except Exception as exc:
            return self._backend_failure("Updating role", exc)
        if updated is None:
            return ServiceResult(
                success=False, error="No se pudo actualizar el rol.", status_code=500,
            )

        # --- 4. Audit trail ---
        log_audit_event(
            logger=self._logger,
            action="UPDATE_ROLE",
            entity_type="User",
            entity_id=user_id,
            user_id=actor.id,
            details={
                "old_role": old_role,
                "new_role": str(validated_role),
                "performed_by": actor.name,
            },
        )
        return ServiceResult(success=True, data=updated)

    def update_user_profile(
        self,
        user_id: str,
        changes: ProfileUpdate,
        actor: Optional[UserProfile],
    ) -> ServiceResult[UserProfile]:
        """Edit contact fields of a profile: the user themself or an admin."""
        if actor is None or actor.id != user_id:
            denied = self._denied(actor, "canManageUsers")
            if denied is not None:
                return denied
        assert actor is not None

        data = changes.changes()
        if not data:
            return ServiceResult(success=False, error="No hay cambios.", status_code=400)
        # Only the fields being changed are checked.
        problems = validate_user_data({"name": "-", "email": "a@b.c", **data})
        if problems:
            return ServiceResult(success=False, error="; ".join(problems), status_code=400)

        try:
            updated = self._repo.update(user_id, data)
        except Exception as exc:
            return self._backend_failure("Updating user profile", exc)
        if updated is None:
            return ServiceResult(success=False, error="Usuario no encontrado.", status_code=404)

        if actor.id != user_id:
            log_audit_event(
                logger=self._logger,
                action="UPDATE_PROFILE",
                entity_type="User",
                entity_id=user_id,
                user_id=actor.id,
                details={"fields": ", ".join(sorted(data))},
            )
        return ServiceResult(success=True, data=updated)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _invalid_role(role: str) -> ServiceResult:
        return ServiceResult(
            success=False,
            error=f"Rol inválido: '{role}'. "
                  f"Debe ser uno de: {', '.join(r.value for r in UserRole)}.",
            status_code=400,
        )

    def _delete_orphaned_auth_user(self, user_id: str) -> None:
        admin = self._db.supabase_admin
        if admin is None:
            self._logger.warning(
                "Auth user %s has no profile row and no service-role key is "
                "configured to remove it.",
                user_id,
            )
            return
        try:
            admin.auth.admin.delete_user(user_id)
            self._logger.info("Orphaned auth user %s deleted.", user_id)
        except Exception as exc:
            self._logger.error("Could not delete orphaned auth user %s: %s", user_id, exc)
