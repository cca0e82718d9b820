"""
Session Resolver.

Runs once at startup to decide whether the user is already signed in.

Flow
----
1. Load the cached session from the ``LocalSessionStore``.
2. If there is one, hand its tokens back to the Supabase client
   (``auth.set_session``).  If that fails the stale slot is cleared and
   the flow continues at step 4.
3. On success the re-established session is written back to the cache.
   A cached profile for the same user is used directly, with **no**
   remote profile fetch, so the UI paints immediately; otherwise the
   ``ProfileLoader`` runs.
4. Without a usable cached session, ask the client for its current
   session under ``SESSION_RESTORE_TIMEOUT_S``.  A session leads to the
   ``ProfileLoader``; a timeout, an error or no session settles signed
   out.  There is no retry.
5. Settle: publish the pair to ``AuthState`` under the generation taken
   when resolution began, then mark initialization complete.  Step 5 runs
   exactly once whatever happened before it.
"""

from __future__ import annotations

import threading
from typing import Optional

from pydantic import ValidationError

from star_limpiezas.auth import AuthState
from star_limpiezas.config import AppConfig
from star_limpiezas.database import DatabaseManager
from star_limpiezas.logger import StructuredLogger
from star_limpiezas.models.auth_models import ResolvedAuth, SessionSnapshot
from star_limpiezas.models.user import UserProfile
from star_limpiezas.services.base_service import BaseService
from star_limpiezas.services.profile_loader import ProfileLoader
from star_limpiezas.services.session_store import LocalSessionStore
from star_limpiezas.utils.timeouts import run_with_timeout


class SessionResolver(BaseService):
    """Startup session recovery with a bounded wait.

    Only one resolution runs per instance.  Concurrent callers block until
    it settles; later callers get the settled result without touching the
    backend again.
    """

    def __init__(
        self,
        db: DatabaseManager,
        store: LocalSessionStore,
        loader: ProfileLoader,
        state: AuthState,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._db = db
        self._store = store
        self._loader = loader
        self._state = state
        self._timeout_s: float = config.SESSION_RESTORE_TIMEOUT_S
        self._lock: threading.Lock = threading.Lock()
        self._result: Optional[ResolvedAuth] = None

    @property
    def settled(self) -> bool:
        return self._result is not None

    def initialize(self) -> ResolvedAuth:
        """Resolve the startup session and publish it to ``AuthState``."""
        with self._lock:
            if self._result is not None:
                return self._result

            generation = self._state.next_generation()
            self._state.set_loading(True)
            session: Optional[SessionSnapshot] = None
            profile: Optional[UserProfile] = None
            try:
                session, profile = self._resolve()
            except Exception as exc:
                self._logger.error(
                    "Session resolution failed unexpectedly: %s", exc, exc_info=True,
                )
                session, profile = None, None
            finally:
                applied = self._state.apply(generation, session, profile)
                if not applied:
                    self._logger.info(
                        "Startup session superseded by a newer auth event.",
                    )
                self._state.mark_initialized()

            self._result = ResolvedAuth(session=session, profile=profile)
            self._logger.info(
                "Session resolution settled (authenticated=%s).",
                session is not None,
                extra={"event": "SESSION_RESOLVED"},
            )
            return self._result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _resolve(self) -> tuple[Optional[SessionSnapshot], Optional[UserProfile]]:
        cached = self._store.load()
        if cached is not None:
            restored = self._restore(cached)
            if restored is not None:
                self._store.save(restored)
                cached_profile = self._store.load_profile()
                if cached_profile is not None and cached_profile.id == restored.user_id:
                    self._logger.info("Session restored with cached profile.")
                    return restored, cached_profile
                return restored, self._loader.load(restored.user_id, restored)

        return self._fetch_current()

    def _restore(self, cached: SessionSnapshot) -> Optional[SessionSnapshot]:
        """Re-establish *cached* with the client; ``None`` on failure.

        An error or an empty response clears the session slot.  A timeout
        leaves it in place, since the tokens may still be good.
        """
        try:
            response = run_with_timeout(
                lambda: self._db.supabase.auth.set_session(
                    cached.access_token, cached.refresh_token,
                ),
                self._timeout_s,
            )
        except TimeoutError:
            self._logger.warning(
                "Restoring the cached session timed out after %.1f s.", self._timeout_s,
                extra={"event": "SESSION_RESTORE_TIMEOUT"},
            )
            return None
        except Exception as exc:
            self._logger.warning(
                "Cached session rejected: %s", exc,
                extra={"event": "SESSION_RESTORE_FAILED"},
            )
            self._store.save(None)
            return None

        raw = getattr(response, "session", None) if response is not None else None
        if raw is None:
            self._logger.warning("Cached session could not be re-established.")
            self._store.save(None)
            return None

        try:
            return SessionSnapshot.from_sdk(raw)
        except ValidationError as exc:
            self._logger.warning("Re-established session unreadable, keeping cached one: %s", exc)
            return cached

    def _fetch_current(self) -> tuple[Optional[SessionSnapshot], Optional[UserProfile]]:
        try:
            raw = run_with_timeout(lambda: self._db.supabase.auth.get_session(), self._timeout_s)
        except TimeoutError:
            self._logger.warning(
                "Fetching the current session timed out after %.1f s.", self._timeout_s,
                extra={"event": "SESSION_FETCH_TIMEOUT"},
            )
            return None, None
        except Exception as exc:
            self._logger.warning(
                "Fetching the current session failed: %s", exc,
                extra={"event": "SESSION_FETCH_FAILED"},
            )
            return None, None

        if raw is None:
            return None, None

        try:
            session = SessionSnapshot.from_sdk(raw)
        except ValidationError as exc:
            self._logger.warning("Current session is unreadable: %s", exc)
            return None, None

        self._store.save(session)
        return session, self._loader.load(session.user_id, session)
