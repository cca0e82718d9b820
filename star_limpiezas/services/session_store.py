"""
Local Session Store.

Persists the last known Supabase session and user profile on the device
so a cold start can paint the UI without waiting on the network.

Storage layout (SQLite ``local_store``, one row per slot)::

    local_store
    ├── key               TEXT PRIMARY KEY   (star_limpiezas_session |
    │                                         star_limpiezas_user_profile)
    ├── encrypted_payload BLOB
    ├── nonce             BLOB
    ├── tag               BLOB
    └── updated_at        TIMESTAMP

Every value is the JSON of a ``{"version": N, "payload": {...}}``
envelope, encrypted with AES-256-GCM.  The slot key is bound to the
ciphertext as associated data, so a blob copied into the other slot fails
authentication.

Security model
--------------
- The key is derived from machine identity (hostname + OS username) via
  PBKDF2-HMAC-SHA256 with a per-machine random salt.  It is derived once
  per process and never written to disk.
- A database copied to another machine or OS account cannot be decrypted;
  it reads as an empty cache.

This is a cache, not a durability guarantee: no method raises.  Any
failure is logged and reads as "nothing stored".
"""

from __future__ import annotations

import getpass
import json
import os
import socket
import stat
import threading
import time
from pathlib import Path
from typing import Optional

from Crypto.Cipher import AES
from Crypto.Hash import SHA256
from Crypto.Protocol.KDF import PBKDF2
from pydantic import ValidationError

from star_limpiezas.config import AppConfig
from star_limpiezas.database import DatabaseManager
from star_limpiezas.logger import StructuredLogger
from star_limpiezas.models.auth_models import CacheEnvelope, SessionSnapshot
from star_limpiezas.models.user import UserProfile


class LocalSessionStore:
    """Encrypted two-slot cache for the session and the user profile.

    Parameters
    ----------
    db:
        Initialised ``DatabaseManager``; only ``.sqlite`` and
        ``.write_lock`` are used.
    config:
        Supplies the slot keys, the envelope version, the salt path and
        the key-derivation iteration count.
    logger:
        Structured JSON logger.
    """

    _KEY_LENGTH: int = 32  # 256 bits
    _SALT_LENGTH: int = 32

    def __init__(
        self,
        db: DatabaseManager,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        self._db: DatabaseManager = db
        self._logger: StructuredLogger = logger
        self._session_key: str = config.SESSION_STORAGE_KEY
        self._profile_key: str = config.PROFILE_STORAGE_KEY
        self._version: int = config.CACHE_SCHEMA_VERSION
        self._salt_path: Path = config.salt_path
        self._iterations: int = config.KEY_DERIVATION_ITERATIONS

        self._key_lock: threading.Lock = threading.Lock()
        self._key: Optional[bytes] = None

    # ------------------------------------------------------------------
    # Session slot
    # ------------------------------------------------------------------

    def save(self, session: Optional[SessionSnapshot]) -> bool:
        """Persist *session*, or clear the slot when it is ``None``.

        Returns ``True`` when the slot now reflects *session*.
        """
        if session is None:
            return self._delete(self._session_key)
        return self._write(self._session_key, session.model_dump(mode="json"))

    def load(self) -> Optional[SessionSnapshot]:
        """Return the stored session, or ``None`` if absent or unreadable."""
        payload = self._read(self._session_key)
        if payload is None:
            return None
        try:
            return SessionSnapshot.model_validate(payload)
        except ValidationError as exc:
            self._logger.warning("Cached session payload is malformed: %s", exc)
            return None

    # ------------------------------------------------------------------
    # Profile slot
    # ------------------------------------------------------------------

    def save_profile(self, profile: Optional[UserProfile]) -> bool:
        """Persist *profile*, or clear the slot when it is ``None``."""
        if profile is None:
            return self._delete(self._profile_key)
        return self._write(self._profile_key, profile.model_dump(mode="json"))

    def load_profile(self) -> Optional[UserProfile]:
        """Return the stored profile, or ``None`` if absent or unreadable."""
        payload = self._read(self._profile_key)
        if payload is None:
            return None
        try:
            return UserProfile.model_validate(payload)
        except ValidationError as exc:
            self._logger.warning("Cached profile payload is malformed: %s", exc)
            return None

    # ------------------------------------------------------------------
    # Both slots
    # ------------------------------------------------------------------

    def clear(self) -> bool:
        """Remove the session and the profile in a single statement."""
        try:
            with self._db.write_lock:
                self._db.sqlite.execute(
                    "DELETE FROM local_store WHERE key IN (?, ?)",
                    (self._session_key, self._profile_key),
                )
                self._db.sqlite.commit()
            self._logger.info("Local session cache cleared.")
            return True
        except Exception as exc:
            self._logger.error("Failed to clear local session cache: %s", exc)
            return False

    @staticmethod
    def is_session_valid(
        session: Optional[SessionSnapshot],
        now: Optional[float] = None,
    ) -> bool:
        """``True`` iff *session* has an expiry strictly in the future.

        ``expires_at`` is compared in Unix seconds against *now*
        (defaults to the current time).
        """
        if session is None or session.expires_at is None:
            return False
        current: float = time.time() if now is None else now
        return session.expires_at > current

    def has_valid_session(self) -> bool:
        """Convenience: a session is stored and it has not expired."""
        return self.is_session_valid(self.load())

    # ------------------------------------------------------------------
    # Envelope I/O
    # ------------------------------------------------------------------

    def _write(self, key: str, payload: dict[str, object]) -> bool:
        envelope = CacheEnvelope(version=self._version, payload=payload)
        plaintext: bytes = envelope.model_dump_json().encode("utf-8")

        try:
            cipher = AES.new(self._derive_key(), AES.MODE_GCM)
            cipher.update(key.encode("utf-8"))
            ciphertext, tag = cipher.encrypt_and_digest(plaintext)
            nonce: bytes = cipher.nonce
        except Exception as exc:
            self._logger.warning("Failed to encrypt '%s' for the local cache: %s", key, exc)
            return False

        try:
            with self._db.write_lock:
                self._db.sqlite.execute(
                    """
                    INSERT INTO local_store (key, encrypted_payload, nonce, tag)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        encrypted_payload = excluded.encrypted_payload,
                        nonce             = excluded.nonce,
                        tag               = excluded.tag,
                        updated_at        = CURRENT_TIMESTAMP
                    """,
                    (key, ciphertext, nonce, tag),
                )
                self._db.sqlite.commit()
            self._logger.debug("Local cache slot '%s' written.", key)
            return True
        except Exception as exc:
            self._logger.warning("Failed to write local cache slot '%s': %s", key, exc)
            return False

    def _read(self, key: str) -> Optional[dict[str, object]]:
        try:
            row = self._db.sqlite.execute(
                "SELECT encrypted_payload, nonce, tag FROM local_store WHERE key = ?",
                (key,),
            ).fetchone()
        except Exception as exc:
            self._logger.warning("Failed to read local cache slot '%s': %s", key, exc)
            return None

        if row is None:
            return None

        try:
            cipher = AES.new(self._derive_key(), AES.MODE_GCM, nonce=row["nonce"])
            cipher.update(key.encode("utf-8"))
            plaintext: bytes = cipher.decrypt_and_verify(row["encrypted_payload"], row["tag"])
        except (ValueError, KeyError) as exc:
            self._logger.warning(
                "Decryption of local cache slot '%s' failed (corrupted data or "
                "machine identity changed): %s",
                key,
                exc,
            )
            return None
        except Exception as exc:
            self._logger.warning("Unexpected error decrypting slot '%s': %s", key, exc)
            return None

        try:
            envelope = CacheEnvelope.model_validate(json.loads(plaintext.decode("utf-8")))
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            self._logger.warning("Local cache slot '%s' is malformed: %s", key, exc)
            return None

        if envelope.version != self._version:
            self._logger.info(
                "Discarding local cache slot '%s' (version %d, expected %d).",
                key,
                envelope.version,
                self._version,
            )
            return None

        return envelope.payload

    def _delete(self, key: str) -> bool:
        try:
            with self._db.write_lock:
                self._db.sqlite.execute("DELETE FROM local_store WHERE key = ?", (key,))
                self._db.sqlite.commit()
            return True
        except Exception as exc:
            self._logger.warning("Failed to clear local cache slot '%s': %s", key, exc)
            return False

    # ------------------------------------------------------------------
    # Key derivation
    # ------------------------------------------------------------------

    def _derive_key(self) -> bytes:
        """Return the 256-bit AES key, deriving it on first use.

        Raises
        ------
        OSError
            If the per-machine salt file cannot be created or read.
        """
        if self._key is None:
            with self._key_lock:
                if self._key is None:
                    password: str = f"{socket.gethostname()}:{getpass.getuser()}"
                    self._key = PBKDF2(
                        password=password,
                        salt=self._get_or_create_salt(),
                        dkLen=self._KEY_LENGTH,
                        count=self._iterations,
                        hmac_hash_module=SHA256,
                    )
        return self._key

    def _get_or_create_salt(self) -> bytes:
        """Return the per-machine salt, creating it (mode 0600) on first run.

        Raises
        ------
        OSError
            If the salt file cannot be read or written.
        """
        if self._salt_path.exists():
            data: bytes = self._salt_path.read_bytes()
            if len(data) == self._SALT_LENGTH:
                return data
            self._logger.warning(
                "Salt file has unexpected length (%d); regenerating.", len(data),
            )

        salt: bytes = os.urandom(self._SALT_LENGTH)
        self._salt_path.parent.mkdir(parents=True, exist_ok=True)
        self._salt_path.write_bytes(salt)
        try:
            self._salt_path.chmod(stat.S_IRUSR | stat.S_IWUSR)  # 0o600
        except OSError as exc:
            self._logger.warning("Could not restrict salt file permissions: %s", exc)

        self._logger.info("Per-machine cache salt created at %s.", self._salt_path)
        return salt
