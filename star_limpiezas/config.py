"""
Application Configuration.

Pydantic Settings model for the Star Limpiezas client core.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Supabase ---
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")
    SUPABASE_SERVICE_ROLE_KEY: SecretStr = SecretStr("")  # Optional; enables the auth admin API

    # --- Local key-value store (device cache) ---
    LOCAL_DB_PATH: str = "star_limpiezas_local.db"
    SESSION_STORAGE_KEY: str = "star_limpiezas_session"
    PROFILE_STORAGE_KEY: str = "star_limpiezas_user_profile"
    CACHE_SCHEMA_VERSION: int = 1
    SESSION_SALT_PATH: str = ""  # empty -> ~/.star_limpiezas_salt
    KEY_DERIVATION_ITERATIONS: int = 600_000

    # --- Bounded waits (seconds) ---
    SESSION_RESTORE_TIMEOUT_S: float = 8.0
    PROFILE_FETCH_TIMEOUT_S: float = 5.0

    # --- Auth ---
    PASSWORD_RESET_REDIRECT: str = "StarLimpiezasMobile://reset-password"
    MIN_PASSWORD_LENGTH: int = 6

    # --- Loyalty ---
    LOYALTY_POINTS_PER_SERVICE: int = 10

    # --- Logging ---
    LOG_FILE: str = "star_limpiezas.log"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when the backend is not configured.

        Without a Supabase URL every remote call fails through the normal
        fallback paths, so the library still starts but nobody can log in.
        """
        _log = logging.getLogger("star_limpiezas.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; configuration loaded from "
                "environment variables or defaults."
            )

        if not self.SUPABASE_URL:
            _log.warning(
                "SUPABASE_URL is empty; backend calls are disabled and "
                "every session resolution will settle unauthenticated."
            )

        return self

    @property
    def salt_path(self) -> Path:
        """Location of the per-machine key-derivation salt."""
        if self.SESSION_SALT_PATH:
            return Path(self.SESSION_SALT_PATH)
        return Path.home() / ".star_limpiezas_salt"


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    Uses a check-lock-check pattern so the fast path never takes the lock.
    Prefer constructor injection of ``AppConfig``; this factory serves the
    entry point and the logger's defaults.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
