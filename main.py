"""
Star Limpiezas Client Core Entry Point.

Bootstraps the dependency graph via constructor injection, initialises
the local SQLite schema, resolves the startup session and reports who is
signed in.  A UI host performs the same wiring and then reads
``AuthState``.

Usage::

    python main.py
"""

from __future__ import annotations

import atexit
import sys
from pathlib import Path

from star_limpiezas.auth import AuthState
from star_limpiezas.config import get_config
from star_limpiezas.database import DatabaseManager
from star_limpiezas.logger import StructuredLogger, get_logger
from star_limpiezas.schema import initialize_schema
from star_limpiezas.services import create_services
from star_limpiezas.services.session_store import LocalSessionStore
from star_limpiezas.utils.formatting import get_role_display_name
from star_limpiezas.utils.timeouts import shutdown_executor


def main() -> int:
    """Wire dependencies, resolve the session and log the outcome."""
    logger: StructuredLogger = get_logger("main")
    logger.info("Starting Star Limpiezas client core...")

    # ------------------------------------------------------------------
    # 1. Configuration (from .env / environment variables)
    # ------------------------------------------------------------------
    config = get_config()

    # ------------------------------------------------------------------
    # 2. Database Manager (Supabase optional, SQLite always)
    # ------------------------------------------------------------------
    db = DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        sqlite_path=Path(config.LOCAL_DB_PATH),
        logger=StructuredLogger(name="database"),
        service_role_key=config.SUPABASE_SERVICE_ROLE_KEY.get_secret_value(),
    )
    # db.close() is idempotent; atexit covers unclean exits.
    atexit.register(db.close)

    # ------------------------------------------------------------------
    # 3. SQLite schema (idempotent)
    # ------------------------------------------------------------------
    initialize_schema(db.sqlite, StructuredLogger(name="schema"))

    # ------------------------------------------------------------------
    # 4. Auth state and encrypted local cache
    # ------------------------------------------------------------------
    state = AuthState(logger=get_logger("auth_state"))
    store = LocalSessionStore(
        db=db,
        config=config,
        logger=StructuredLogger(name="session_store"),
    )

    # ------------------------------------------------------------------
    # 5. Service container (single composition root)
    # ------------------------------------------------------------------
    services = create_services(db=db, config=config, state=state, store=store)
    auth_service = services["auth_service"]

    # ------------------------------------------------------------------
    # 6. Startup session resolution
    # ------------------------------------------------------------------
    try:
        auth_service.initialize()
        if state.is_authenticated:
            logger.info(
                "Signed in as %s <%s> (%s).",
                state.user_name,
                state.user_email,
                get_role_display_name(state.user_role),
            )
        else:
            logger.info("No active session; sign-in required.")
    finally:
        auth_service.shutdown()
        shutdown_executor()
        db.close()
        logger.info("Star Limpiezas client core shut down.")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        pass
