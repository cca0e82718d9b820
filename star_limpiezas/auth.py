"""
Authentication State.

Provides an injectable ``AuthState`` holding the resolved session and
profile for the whole client.  Screens receive the same instance and only
read from it; the session resolver and ``AuthService`` are its only
writers.

Every write is tagged with a *generation* taken from
:meth:`AuthState.next_generation` when the writer started its work.  A
write whose generation is not newer than the last applied one is dropped,
so a slow startup resolution can never overwrite the result of an auth
event that began after it.

Usage::

    state = AuthState()
    unsubscribe = state.subscribe(lambda s: print(s.is_authenticated))

    generation = state.next_generation()
    state.apply(generation, session, profile)
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from types import MappingProxyType
from typing import Callable, Optional

from star_limpiezas.logger import StructuredLogger
from star_limpiezas.models.auth_models import SessionSnapshot
from star_limpiezas.models.enums import UserRole
from star_limpiezas.models.permissions import permissions_for
from star_limpiezas.models.user import UserProfile
from star_limpiezas.utils.string_helpers import email_local_part

Listener = Callable[["AuthState"], None]

_NO_PERMISSIONS: Mapping[str, bool] = MappingProxyType({})


class AuthState:
    """Thread-safe holder of the current session and profile.

    Parameters
    ----------
    logger:
        Optional logger; used to report listeners that raise.
    """

    def __init__(self, logger: Optional[StructuredLogger] = None) -> None:
        self._lock: threading.RLock = threading.RLock()
        self._logger: Optional[StructuredLogger] = logger
        self._session: Optional[SessionSnapshot] = None
        self._profile: Optional[UserProfile] = None
        self._initializing: bool = True
        self._loading: bool = True
        self._issued_generation: int = 0
        self._applied_generation: int = 0
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # Writer API
    # ------------------------------------------------------------------

    def next_generation(self) -> int:
        """Reserve a generation number for a write about to be computed."""
        with self._lock:
            self._issued_generation += 1
            return self._issued_generation

    def apply(
        self,
        generation: int,
        session: Optional[SessionSnapshot],
        profile: Optional[UserProfile],
    ) -> bool:
        """Publish *session* and *profile* if *generation* is the newest.

        Returns ``False`` (and changes nothing) for a stale generation.
        """
        with self._lock:
            if generation <= self._applied_generation:
                return False
            self._applied_generation = generation
            self._session = session
            self._profile = profile if session is not None else None
        self._notify()
        return True

    def mark_initialized(self) -> None:
        """End the startup phase: ``initializing`` and ``loading`` go False."""
        with self._lock:
            self._initializing = False
            self._loading = False
        self._notify()

    def set_loading(self, loading: bool) -> None:
        with self._lock:
            if self._loading == loading:
                return
            self._loading = loading
        self._notify()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* after every state change.

        Returns a function that removes the listener.
        """
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(self)
            except Exception as exc:
                if self._logger is not None:
                    self._logger.error(
                        "Auth state listener failed: %s", exc, exc_info=True,
                    )

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    @property
    def session(self) -> Optional[SessionSnapshot]:
        with self._lock:
            return self._session

    @property
    def profile(self) -> Optional[UserProfile]:
        with self._lock:
            return self._profile

    @property
    def initializing(self) -> bool:
        with self._lock:
            return self._initializing

    @property
    def loading(self) -> bool:
        with self._lock:
            return self._loading

    @property
    def is_authenticated(self) -> bool:
        """``True`` when a session is held."""
        with self._lock:
            return self._session is not None

    @property
    def is_email_verified(self) -> bool:
        with self._lock:
            return bool(self._session and self._session.user.email_confirmed_at)

    @property
    def user_name(self) -> str:
        """Profile name, else the email local part, else ``"Usuario"``."""
        with self._lock:
            if self._profile is not None and self._profile.name:
                return self._profile.name
            email = self._session.user.email if self._session else None
            return email_local_part(email) or "Usuario"

    @property
    def user_email(self) -> str:
        with self._lock:
            if self._profile is not None and self._profile.email:
                return self._profile.email
            if self._session is not None and self._session.user.email:
                return self._session.user.email
            return ""

    @property
    def user_role(self) -> UserRole:
        with self._lock:
            return self._profile.role if self._profile is not None else UserRole.USER

    def is_admin(self) -> bool:
        with self._lock:
            return self._profile is not None and self._profile.role == UserRole.ADMIN

    def is_user(self) -> bool:
        with self._lock:
            return self._profile is not None and self._profile.role == UserRole.USER

    def permissions(self) -> Mapping[str, bool]:
        """Permission row for the loaded profile; empty when none is loaded."""
        with self._lock:
            if self._profile is None:
                return _NO_PERMISSIONS
            return permissions_for(self._profile.role)

    def has_permission(self, name: str) -> bool:
        return self.permissions().get(name, False)
