from __future__ import annotations

import time

import pytest

from fake_supabase import make_session
from star_limpiezas.config import AppConfig
from star_limpiezas.database import DatabaseManager
from star_limpiezas.logger import StructuredLogger
from star_limpiezas.models.auth_models import SessionSnapshot
from star_limpiezas.models.user import UserProfile
from star_limpiezas.schema import CURRENT_SCHEMA_VERSION, initialize_schema
from star_limpiezas.services.session_store import LocalSessionStore


@pytest.fixture
def session() -> SessionSnapshot:
    return SessionSnapshot.from_sdk(make_session("u1", "ana@example.com", name="Ana"))


def _snapshot(expires_at):
    payload = make_session()
    payload["expires_at"] = expires_at
    return SessionSnapshot.from_sdk(payload)


# --- validity ---

def test_session_without_expiry_is_invalid():
    assert LocalSessionStore.is_session_valid(_snapshot(None)) is False


def test_session_expired_in_the_past_is_invalid():
    assert LocalSessionStore.is_session_valid(_snapshot(1_000), now=2_000) is False


def test_session_expiring_exactly_now_is_invalid():
    assert LocalSessionStore.is_session_valid(_snapshot(2_000), now=2_000) is False


def test_session_expiring_in_the_future_is_valid():
    assert LocalSessionStore.is_session_valid(_snapshot(2_001), now=2_000) is True


def test_no_session_is_invalid():
    assert LocalSessionStore.is_session_valid(None) is False


# --- session slot ---

def test_save_then_load_round_trips(store, session):
    assert store.save(session) is True
    assert store.load() == session


def test_save_none_clears_and_is_idempotent(store, session):
    store.save(session)
    assert store.save(None) is True
    assert store.load() is None
    assert store.save(None) is True
    assert store.load() is None


def test_load_on_empty_store_is_none(store):
    assert store.load() is None
    assert store.load_profile() is None


def test_has_valid_session(store):
    assert store.has_valid_session() is False
    store.save(SessionSnapshot.from_sdk(make_session(expires_in=600)))
    assert store.has_valid_session() is True
    store.save(SessionSnapshot.from_sdk(make_session(expires_in=-600)))
    assert store.has_valid_session() is False


# --- profile slot ---

def test_profile_round_trips(store, client_user):
    assert store.save_profile(client_user) is True
    assert store.load_profile() == client_user


def test_clear_removes_both_slots(store, session, client_user):
    store.save(session)
    store.save_profile(client_user)
    assert store.clear() is True
    assert store.load() is None
    assert store.load_profile() is None


# --- encryption and envelope ---

def test_tokens_are_not_stored_in_plaintext(store, db, session):
    store.save(session)
    row = db.sqlite.execute(
        "SELECT encrypted_payload FROM local_store WHERE key = ?",
        ("star_limpiezas_session",),
    ).fetchone()
    assert session.access_token.encode() not in bytes(row["encrypted_payload"])


def test_blob_moved_to_other_slot_is_rejected(store, db, session):
    store.save(session)
    db.sqlite.execute(
        "UPDATE local_store SET key = ? WHERE key = ?",
        ("star_limpiezas_user_profile", "star_limpiezas_session"),
    )
    db.sqlite.commit()
    assert store.load_profile() is None


def test_tampered_blob_reads_as_miss(store, db, session):
    store.save(session)
    db.sqlite.execute(
        "UPDATE local_store SET encrypted_payload = ? WHERE key = ?",
        (b"garbage", "star_limpiezas_session"),
    )
    db.sqlite.commit()
    assert store.load() is None


def test_other_envelope_version_is_discarded(db, config, logger, session):
    LocalSessionStore(db=db, config=config, logger=logger).save(session)

    newer = config.model_copy(update={"CACHE_SCHEMA_VERSION": config.CACHE_SCHEMA_VERSION + 1})
    assert LocalSessionStore(db=db, config=newer, logger=logger).load() is None


def test_salt_is_created_once(store, config, session):
    store.save(session)
    salt = config.salt_path.read_bytes()
    assert len(salt) == 32

    store.save(session)
    assert config.salt_path.read_bytes() == salt


def test_failures_are_swallowed(store, db, session):
    db.close()
    assert store.save(session) is False
    assert store.load() is None
    assert store.clear() is False


# --- schema ---

def test_schema_is_idempotent(db, logger):
    initialize_schema(db.sqlite, logger)
    row = db.sqlite.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()
    assert row["version"] == CURRENT_SCHEMA_VERSION


def test_schema_mismatch_rebuilds_cache(db, store, logger, session):
    store.save(session)
    db.sqlite.execute("UPDATE schema_version SET version = 99 WHERE id = 1")
    db.sqlite.commit()

    initialize_schema(db.sqlite, logger)

    assert store.load() is None


def test_offline_database_still_caches(offline_db: DatabaseManager, config: AppConfig,
                                       logger: StructuredLogger, session):
    offline_store = LocalSessionStore(db=offline_db, config=config, logger=logger)
    assert offline_store.save(session) is True
    assert offline_store.load() == session
    assert not offline_db.is_online


def test_expiry_uses_unix_seconds():
    snapshot = SessionSnapshot.from_sdk(make_session(expires_in=120))
    assert snapshot.expires_at is not None
    assert snapshot.expires_at > time.time()
