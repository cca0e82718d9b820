"""
Authentication Service.

Mutating auth operations for the client: startup initialization, sign-up,
sign-in, sign-out, password reset and change, and self-service profile
edits.  Also listens to the Supabase auth-state stream and republishes
each event to ``AuthState``.

Every public method returns an ``AuthResult``; none raises.  On failure
neither the local cache nor ``AuthState`` is modified.

Roles are read from the ``users`` table only.  Sign-up always writes the
``user`` role and ``ProfileUpdate`` has no role field; promotions go
through ``UserService.update_user_role``.
"""

from __future__ import annotations

from typing import Optional

from pydantic import ValidationError

from star_limpiezas.auth import AuthState
from star_limpiezas.config import AppConfig
from star_limpiezas.database import DatabaseManager
from star_limpiezas.logger import StructuredLogger
from star_limpiezas.models.auth_models import (
    SUPABASE_ERROR_MAP,
    AuthErrorCode,
    AuthResult,
    SessionSnapshot,
)
from star_limpiezas.models.enums import UserRole
from star_limpiezas.models.user import ProfileUpdate, UserProfile
from star_limpiezas.repositories.user_repository import UserRepository
from star_limpiezas.services.base_service import BaseService
from star_limpiezas.services.profile_loader import DEFAULT_USER_NAME, ProfileLoader
from star_limpiezas.services.session_resolver import SessionResolver
from star_limpiezas.services.session_store import LocalSessionStore
from star_limpiezas.utils.string_helpers import email_local_part
from star_limpiezas.utils.validation import validate_email, validate_password

SIGNED_OUT_EVENT: str = "SIGNED_OUT"


class AuthService(BaseService):
    """Auth facade over Supabase Auth, the local cache and ``AuthState``.

    Parameters
    ----------
    db:
        Provides the Supabase client.
    store:
        Local session/profile cache.
    loader:
        Resolves the profile after every new session.
    resolver:
        Startup session resolution.
    state:
        Shared auth state; this service is one of its writers.
    users:
        Repository for the ``users`` table.
    config:
        Application configuration.
    logger:
        Structured JSON logger.
    """

    def __init__(
        self,
        db: DatabaseManager,
        store: LocalSessionStore,
        loader: ProfileLoader,
        resolver: SessionResolver,
        state: AuthState,
        users: UserRepository,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._db = db
        self._store = store
        self._loader = loader
        self._resolver = resolver
        self._state = state
        self._users = users
        self._config = config
        self._subscription: Optional[object] = None

    @property
    def state(self) -> AuthState:
        return self._state

    # ==================================================================
    # Initialization and auth events
    # ==================================================================

    def initialize(self) -> AuthResult:
        """Resolve the startup session, then follow auth-state events."""
        resolved = self._resolver.initialize()
        self._subscribe_to_auth_events()

        if resolved.session is None:
            return AuthResult(success=True)
        return self._identity_result(resolved.session, resolved.profile)

    def shutdown(self) -> None:
        """Stop listening to auth-state events."""
        subscription, self._subscription = self._subscription, None
        unsubscribe = getattr(subscription, "unsubscribe", None)
        if callable(unsubscribe):
            try:
                unsubscribe()
            except Exception as exc:
                self._logger.warning("Auth event unsubscribe failed: %s", exc)

    def _subscribe_to_auth_events(self) -> None:
        if self._subscription is not None:
            return
        try:
            self._subscription = self._db.supabase.auth.on_auth_state_change(
                self.handle_auth_event,
            )
        except RuntimeError:
            self._logger.debug("Offline; not subscribing to auth events.")
        except Exception as exc:
            self._logger.warning("Could not subscribe to auth events: %s", exc)

    def handle_auth_event(self, event: str, session: object) -> None:
        """Apply one auth-state change from the Supabase client.

        Runs on whatever thread the SDK calls back on, so errors are
        logged here instead of propagating into the SDK.
        """
        generation = self._state.next_generation()
        try:
            if session is None or str(event) == SIGNED_OUT_EVENT:
                self._store.clear()
                self._state.apply(generation, None, None)
                self._logger.info(
                    "Auth event %s: signed out.", event,
                    extra={"event": "AUTH_EVENT", "auth_event": str(event)},
                )
                return

            snapshot = SessionSnapshot.from_sdk(session)
            self._store.save(snapshot)
            profile = self._loader.load(snapshot.user_id, snapshot)
            self._state.apply(generation, snapshot, profile)
            self._logger.info(
                "Auth event %s for user %s.", event, snapshot.user_id,
                extra={"event": "AUTH_EVENT", "auth_event": str(event)},
            )
        except Exception as exc:
            self._logger.error(
                "Failed to handle auth event %s: %s", event, exc, exc_info=True,
            )

    # ==================================================================
    # Sign-up / sign-in / sign-out
    # ==================================================================

    def sign_up(
        self,
        email: str,
        password: str,
        name: str,
        phone: Optional[str] = None,
        address: Optional[str] = None,
    ) -> AuthResult:
        """Create an account and its ``users`` row with the ``user`` role.

        ``requires_email_confirmation`` is set when Supabase created the
        account without opening a session.
        """
        email = email.strip().lower()
        name = name.strip()
        invalid = self._validate_credentials(email, password)
        if invalid is not None:
            return invalid
        if not name:
            return AuthResult.failure(AuthErrorCode.VALIDATION_ERROR, "El nombre es requerido")

        self._state.set_loading(True)
        try:
            response = self._db.supabase.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": {"name": name, "role": str(UserRole.USER)}},
            })
            user = getattr(response, "user", None)
            if user is None:
                return AuthResult.failure(AuthErrorCode.UNKNOWN_ERROR)

            profile = UserProfile(
                id=user.id,
                name=name or email_local_part(email) or DEFAULT_USER_NAME,
                email=email,
                phone=phone or None,
                address=address or None,
                role=UserRole.USER,
            )
            inserted = True
            try:
                self._users.insert(profile)
            except Exception as exc:
                inserted = False
                self._logger.error(
                    "Profile row for new user %s could not be created: %s", user.id, exc,
                    extra={"event": "SIGNUP_PROFILE_FAILED", "user_id": user.id},
                )

            raw_session = getattr(response, "session", None)
            if raw_session is not None:
                self._publish(SessionSnapshot.from_sdk(raw_session), profile if inserted else None)

            self._logger.info(
                "User registered: %s", email,
                extra={"event": "SIGNUP", "user_id": user.id, "email": email},
            )
            return AuthResult(
                success=True,
                user_id=user.id,
                email=email,
                name=profile.name,
                role=UserRole.USER,
                requires_email_confirmation=raw_session is None,
            )
        except RuntimeError:
            return self._offline()
        except Exception as exc:
            return self._classify_error(exc, "SIGNUP_FAILED")
        finally:
            self._state.set_loading(False)

    def sign_in(self, email: str, password: str) -> AuthResult:
        """Authenticate, then cache and publish the session and profile."""
        email = email.strip().lower()
        invalid = self._validate_credentials(email, password)
        if invalid is not None:
            return invalid

        self._state.set_loading(True)
        try:
            response = self._db.supabase.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
            raw_session = getattr(response, "session", None)
            if raw_session is None:
                return AuthResult.failure(AuthErrorCode.UNKNOWN_ERROR)

            snapshot = SessionSnapshot.from_sdk(raw_session)
            profile = self._publish(snapshot)

            self._logger.info(
                "User authenticated: %s (role: %s)", profile.email or email, profile.role,
                extra={"event": "LOGIN", "user_id": snapshot.user_id, "email": email},
            )
            return self._identity_result(snapshot, profile)
        except RuntimeError:
            return self._offline()
        except Exception as exc:
            return self._classify_error(exc, "LOGIN_FAILED")
        finally:
            self._state.set_loading(False)

    def sign_out(self) -> AuthResult:
        """Revoke the session, then clear the cache and ``AuthState``.

        Without a configured backend there is nothing to revoke, so only
        the local state is cleared.  A backend error leaves everything in
        place and is returned to the caller.
        """
        user_id = self._state.session.user_id if self._state.session else "unknown"
        self._state.set_loading(True)
        try:
            try:
                self._db.supabase.auth.sign_out()
            except RuntimeError:
                self._logger.debug("Offline; skipping server-side sign_out.")
            except Exception as exc:
                return self._classify_error(exc, "LOGOUT_FAILED")

            generation = self._state.next_generation()
            self._store.clear()
            self._state.apply(generation, None, None)
            self._logger.info(
                "User logged out: %s", user_id,
                extra={"event": "LOGOUT", "user_id": user_id},
            )
            return AuthResult(success=True)
        finally:
            self._state.set_loading(False)

    # ==================================================================
    # Passwords
    # ==================================================================

    def reset_password(self, email: str) -> AuthResult:
        """Send a password-reset email that deep-links back into the app."""
        email = email.strip().lower()
        check = validate_email(email)
        if not check.is_valid:
            return AuthResult.failure(AuthErrorCode.VALIDATION_ERROR, check.error_message)

        try:
            self._db.supabase.auth.reset_password_for_email(
                email, {"redirect_to": self._config.PASSWORD_RESET_REDIRECT},
            )
            self._logger.info(
                "Password reset requested for %s", email,
                extra={"event": "PASSWORD_RESET_REQUESTED", "email": email},
            )
            return AuthResult(success=True, email=email)
        except RuntimeError:
            return self._offline()
        except Exception as exc:
            return self._classify_error(exc, "PASSWORD_RESET_FAILED")

    def update_password(self, new_password: str) -> AuthResult:
        """Change the signed-in user's password."""
        check = validate_password(new_password, self._config.MIN_PASSWORD_LENGTH)
        if not check.is_valid:
            return AuthResult.failure(AuthErrorCode.WEAK_PASSWORD, check.error_message)

        self._state.set_loading(True)
        try:
            self._db.supabase.auth.update_user({"password": new_password})
            self._logger.info("Password updated.", extra={"event": "PASSWORD_UPDATED"})
            return AuthResult(success=True)
        except RuntimeError:
            return self._offline()
        except Exception as exc:
            return self._classify_error(exc, "PASSWORD_UPDATE_FAILED")
        finally:
            self._state.set_loading(False)

    # ==================================================================
    # Profile
    # ==================================================================

    def update_profile(self, changes: ProfileUpdate) -> AuthResult:
        """Write *changes* to the signed-in user's row, then merge locally.

        The local profile is only touched once the remote write succeeded.
        """
        profile = self._state.profile
        if profile is None:
            return AuthResult.failure(AuthErrorCode.NO_PROFILE)

        data = changes.changes()
        if "name" in data and not (data["name"] or "").strip():
            return AuthResult.failure(AuthErrorCode.VALIDATION_ERROR, "El nombre es obligatorio")
        if "email" in data:
            check = validate_email(data["email"])
            if not check.is_valid:
                return AuthResult.failure(AuthErrorCode.VALIDATION_ERROR, check.error_message)
        if not data:
            return self._identity_result(self._state.session, profile)

        try:
            stored = self._users.update(profile.id, data)
        except RuntimeError:
            return self._offline()
        except Exception as exc:
            return self._classify_error(exc, "PROFILE_UPDATE_FAILED")

        if stored is None:
            return AuthResult.failure(
                AuthErrorCode.UNKNOWN_ERROR, "No se pudo actualizar el perfil.",
            )

        merged = profile.model_copy(update=data)
        generation = self._state.next_generation()
        self._store.save_profile(merged)
        self._state.apply(generation, self._state.session, merged)
        self._logger.info(
            "Profile updated for %s (%s).", profile.id, ", ".join(sorted(data)),
            extra={"event": "PROFILE_UPDATED", "user_id": profile.id},
        )
        return self._identity_result(self._state.session, merged)

    # ==================================================================
    # Helpers
    # ==================================================================

    def _publish(
        self,
        snapshot: SessionSnapshot,
        profile: Optional[UserProfile] = None,
    ) -> UserProfile:
        """Cache and publish a session the SDK call just returned.

        The SDK reports ``SIGNED_IN`` to :meth:`handle_auth_event` before
        the call returns.  When that already published *snapshot*, its
        profile is reused as is.  A *profile* the caller just wrote wins
        over whatever the event loaded.
        """
        if profile is None:
            published = self._published_profile(snapshot)
            if published is not None:
                return published
            profile = self._loader.load(snapshot.user_id, snapshot)
        else:
            self._store.save_profile(profile)

        generation = self._state.next_generation()
        self._store.save(snapshot)
        self._state.apply(generation, snapshot, profile)
        return profile

    def _published_profile(self, snapshot: SessionSnapshot) -> Optional[UserProfile]:
        session, profile = self._state.session, self._state.profile
        if session is None or profile is None:
            return None
        if session.access_token != snapshot.access_token or profile.id != snapshot.user_id:
            return None
        return profile

    def _validate_credentials(self, email: str, password: str) -> Optional[AuthResult]:
        email_check = validate_email(email)
        if not email_check.is_valid:
            return AuthResult.failure(AuthErrorCode.VALIDATION_ERROR, email_check.error_message)
        password_check = validate_password(password, self._config.MIN_PASSWORD_LENGTH)
        if not password_check.is_valid:
            return AuthResult.failure(AuthErrorCode.VALIDATION_ERROR, password_check.error_message)
        return None

    @staticmethod
    def _identity_result(
        session: Optional[SessionSnapshot],
        profile: Optional[UserProfile],
    ) -> AuthResult:
        if profile is not None:
            return AuthResult(
                success=True,
                user_id=profile.id,
                email=profile.email,
                name=profile.name,
                role=profile.role,
            )
        if session is not None:
            return AuthResult(success=True, user_id=session.user_id, email=session.user.email)
        return AuthResult(success=True)

    def _offline(self) -> AuthResult:
        self._logger.warning("Auth operation attempted without a backend.")
        return AuthResult.failure(AuthErrorCode.NETWORK_ERROR)

    def _classify_error(self, exc: Exception, event: str) -> AuthResult:
        """Map a Supabase or network exception to an ``AuthResult``."""
        if isinstance(exc, (ConnectionError, TimeoutError)):
            self._logger.warning(
                "Network error: %s", exc, extra={"event": event, "error_code": "network"},
            )
            return AuthResult.failure(AuthErrorCode.NETWORK_ERROR)

        if isinstance(exc, ValidationError):
            self._logger.error("Unexpected auth payload: %s", exc, extra={"event": event})
            return AuthResult.failure(AuthErrorCode.UNKNOWN_ERROR)

        error_str = f"{exc} {getattr(exc, 'code', '') or ''}".lower()
        for code_key, error_code in SUPABASE_ERROR_MAP.items():
            if code_key in error_str:
                self._logger.warning(
                    "Auth error (%s): %s", code_key, exc,
                    extra={"event": event, "error_code": code_key},
                )
                return AuthResult.failure(error_code)

        self._logger.warning(
            "Unknown auth error: %s", exc, extra={"event": event, "error_code": "unknown"},
        )
        return AuthResult.failure(AuthErrorCode.UNKNOWN_ERROR)
