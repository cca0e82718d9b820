"""Shared fixtures: fake backend, temporary cache database and wired services."""

from __future__ import annotations

import io
from collections.abc import Iterator
from pathlib import Path

import pytest

from fake_supabase import FakeSupabase
from star_limpiezas.auth import AuthState
from star_limpiezas.config import AppConfig
from star_limpiezas.database import DatabaseManager
from star_limpiezas.logger import StructuredLogger
from star_limpiezas.models.enums import UserRole
from star_limpiezas.models.user import UserProfile
from star_limpiezas.schema import initialize_schema
from star_limpiezas.services import ServiceContainer, create_services
from star_limpiezas.services.session_store import LocalSessionStore
from star_limpiezas.utils.timeouts import shutdown_executor


@pytest.fixture(autouse=True)
def _stable_machine_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("USER", "tester")
    monkeypatch.setenv("LOGNAME", "tester")


@pytest.fixture(autouse=True)
def _fresh_executor() -> Iterator[None]:
    yield
    # Abandoned slow calls keep their worker busy; start each test with a new pool.
    shutdown_executor()


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        SUPABASE_URL="",
        LOCAL_DB_PATH=str(tmp_path / "cache.db"),
        SESSION_SALT_PATH=str(tmp_path / "salt"),
        KEY_DERIVATION_ITERATIONS=1_000,
        SESSION_RESTORE_TIMEOUT_S=0.2,
        PROFILE_FETCH_TIMEOUT_S=0.2,
        LOG_FILE="",
    )


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def logger(request: pytest.FixtureRequest, log_stream: io.StringIO) -> StructuredLogger:
    # One logger name per test so each gets its own handler and stream.
    return StructuredLogger(
        name=f"tests.{request.node.nodeid}",
        stream=log_stream,
        log_file="",
    )


@pytest.fixture
def fake() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def admin_fake() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def signup_fake() -> FakeSupabase:
    """Backs the throwaway clients handed out by ``isolated_client``."""
    return FakeSupabase()


@pytest.fixture
def db(
    fake: FakeSupabase,
    signup_fake: FakeSupabase,
    config: AppConfig,
    logger: StructuredLogger,
) -> Iterator[DatabaseManager]:
    manager = DatabaseManager(
        supabase_url="",
        supabase_key="",
        sqlite_path=config.LOCAL_DB_PATH,
        logger=logger,
        client=fake,  # type: ignore[arg-type]
        client_factory=lambda: signup_fake,  # type: ignore[arg-type]
    )
    initialize_schema(manager.sqlite, logger)
    yield manager
    manager.close()


@pytest.fixture
def offline_db(config: AppConfig, logger: StructuredLogger) -> Iterator[DatabaseManager]:
    manager = DatabaseManager(
        supabase_url="",
        supabase_key="",
        sqlite_path=":memory:",
        logger=logger,
    )
    initialize_schema(manager.sqlite, logger)
    yield manager
    manager.close()


@pytest.fixture
def store(db: DatabaseManager, config: AppConfig, logger: StructuredLogger) -> LocalSessionStore:
    return LocalSessionStore(db=db, config=config, logger=logger)


@pytest.fixture
def state(logger: StructuredLogger) -> AuthState:
    return AuthState(logger=logger)


@pytest.fixture
def services(
    db: DatabaseManager,
    config: AppConfig,
    state: AuthState,
    store: LocalSessionStore,
    logger: StructuredLogger,
) -> ServiceContainer:
    return create_services(db=db, config=config, state=state, store=store, logger=logger)


@pytest.fixture
def admin() -> UserProfile:
    return UserProfile(id="admin-1", name="Admin", email="admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
def client_user() -> UserProfile:
    return UserProfile(id="u1", name="Ana", email="ana@example.com", role=UserRole.USER)
