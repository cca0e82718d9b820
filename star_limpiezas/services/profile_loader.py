"""
Profile Loader.

Resolves the ``UserProfile`` (and therefore the role) for an
authenticated user.  The remote ``users`` row is authoritative; when it
cannot be read in time the loader degrades to the cached profile, then to
a synthesized one.  ``load`` never raises.

The synthesized profile always carries the least-privileged role, so
uncertainty can never elevate a user.  A cached admin profile, on the
other hand, is kept as-is on a timeout.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from star_limpiezas.config import AppConfig
from star_limpiezas.logger import StructuredLogger
from star_limpiezas.models.auth_models import SessionSnapshot
from star_limpiezas.models.enums import UserRole
from star_limpiezas.models.user import UserProfile
from star_limpiezas.repositories.user_repository import UserRepository
from star_limpiezas.services.base_service import BaseService
from star_limpiezas.services.session_store import LocalSessionStore
from star_limpiezas.utils.string_helpers import email_local_part
from star_limpiezas.utils.timeouts import run_with_timeout

DEFAULT_USER_NAME: str = "Usuario"


def default_profile(
    user_id: str,
    session_hint: Optional[SessionSnapshot] = None,
    now: Optional[datetime] = None,
) -> UserProfile:
    """Build the minimal profile used whenever no real one is available.

    The name is the ``name`` from auth metadata, else the local part of the
    session email, else ``"Usuario"``.  The role is always ``user``;
    metadata is never consulted for it.
    """
    email: str = ""
    name: str = ""
    if session_hint is not None:
        email = session_hint.user.email or ""
        metadata_name = session_hint.user.user_metadata.get("name")
        if isinstance(metadata_name, str):
            name = metadata_name.strip()

    return UserProfile(
        id=user_id,
        name=name or email_local_part(email) or DEFAULT_USER_NAME,
        email=email,
        phone=None,
        address=None,
        role=UserRole.USER,
        created_at=now or datetime.now(timezone.utc),
    )


class ProfileLoader(BaseService):
    """Fetches profiles under a bounded wait with cache fallback.

    Parameters
    ----------
    users:
        Repository for the remote ``users`` table.
    store:
        Local cache; read for the fallback and written with whatever
        profile is returned.
    config:
        Supplies ``PROFILE_FETCH_TIMEOUT_S``.
    logger:
        Structured JSON logger.
    """

    def __init__(
        self,
        users: UserRepository,
        store: LocalSessionStore,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._users = users
        self._store = store
        self._timeout_s: float = config.PROFILE_FETCH_TIMEOUT_S

    def load(
        self,
        user_id: str,
        session_hint: Optional[SessionSnapshot] = None,
    ) -> UserProfile:
        """Return the best available profile for *user_id*.

        Order of preference: remote row, cached profile for the same user,
        :func:`default_profile`.  The result is written to the cache.
        """
        cached = self._store.load_profile()
        if cached is not None and cached.id != user_id:
            self._logger.debug("Ignoring cached profile of another user.")
            cached = None

        remote: Optional[UserProfile] = None
        try:
            remote = run_with_timeout(lambda: self._users.get_by_id(user_id), self._timeout_s)
            if remote is None:
                self._logger.warning(
                    "No profile row for user %s.", user_id,
                    extra={"event": "PROFILE_MISSING", "user_id": user_id},
                )
        except TimeoutError:
            self._logger.warning(
                "Profile fetch for %s timed out after %.1f s.", user_id, self._timeout_s,
                extra={"event": "PROFILE_TIMEOUT", "user_id": user_id},
            )
        except Exception as exc:
            self._logger.warning(
                "Profile fetch for %s failed: %s", user_id, exc,
                extra={"event": "PROFILE_FETCH_FAILED", "user_id": user_id},
            )

        if remote is not None:
            self._store.save_profile(remote)
            return remote

        if cached is not None:
            self._logger.info("Using cached profile for %s.", user_id)
            profile = cached
        else:
            self._logger.info("Using default profile for %s.", user_id)
            profile = default_profile(user_id, session_hint)

        self._store.save_profile(profile)
        return profile
