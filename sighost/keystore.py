"""External key storage behind ``keypair_from_id``.

Guests name a stored key by an opaque identifier; the host resolves it to
PKCS#8 material without the guest ever seeing where it lives. The OS
keyring is the primary backend. Headless hosts without a system keyring
use a Fernet-encrypted JSON file keyed by machine-id.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
import logging
import os
import platform
import threading
from pathlib import Path

import keyring
import keyring.errors
from cryptography.fernet import Fernet, InvalidToken
from pydantic import BaseModel, ValidationError

from sighost.config import KeyStoreConfig
from sighost.protocols.security import KeyStoreBackend

logger = logging.getLogger(__name__)


class KeyStoreError(Exception):
    """The key store could not be reached."""


class StoredKey(BaseModel):
    alg: str
    pkcs8: str

    def pkcs8_bytes(self) -> bytes:
        return base64.b64decode(self.pkcs8.encode("ascii"), validate=True)


class KeyringBackend:
    """OS keyring via the ``keyring`` library."""

    def __init__(self, service_name: str = "sighost") -> None:
        self._service_name = service_name

    def get(self, ref_id: str) -> str | None:
        try:
            return keyring.get_password(self._service_name, ref_id)
        except keyring.errors.KeyringError as exc:
            raise KeyStoreError(f"keyring lookup failed: {exc}") from exc

    def set(self, ref_id: str, value: str) -> None:
        try:
            keyring.set_password(self._service_name, ref_id, value)
        except keyring.errors.KeyringError as exc:
            raise KeyStoreError(f"keyring write failed: {exc}") from exc

    def delete(self, ref_id: str) -> None:
        try:
            keyring.delete_password(self._service_name, ref_id)
        except keyring.errors.PasswordDeleteError:
            return
        except keyring.errors.KeyringError as exc:
            raise KeyStoreError(f"keyring delete failed: {exc}") from exc


class EncryptedFileBackend:
    """Fernet-encrypted JSON file, keyed by machine-id unless a key is given."""

    def __init__(self, path: Path, fernet_key: bytes | None = None) -> None:
        self._path = path
        self._fernet = Fernet(fernet_key if fernet_key is not None else self._derive_key())
        self._lock = threading.Lock()

    def get(self, ref_id: str) -> str | None:
        with self._lock:
            return self._load().get(ref_id)

    def set(self, ref_id: str, value: str) -> None:
        with self._lock:
            store = self._load()
            store[ref_id] = value
            self._save(store)

    def delete(self, ref_id: str) -> None:
        with self._lock:
            store = self._load()
            if ref_id in store:
                del store[ref_id]
                self._save(store)

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._fernet.decrypt(self._path.read_bytes()))
        except (InvalidToken, json.JSONDecodeError) as exc:
            raise KeyStoreError(f"key file {self._path} is corrupted or was written on another machine") from exc
        except OSError as exc:
            raise KeyStoreError(f"key file {self._path} is unreadable") from exc
        if not isinstance(data, dict):
            raise KeyStoreError(f"key file {self._path} does not hold a mapping")
        return data

    def _save(self, store: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        pt = json.dumps(store, sort_keys=True).encode()
        self._path.write_bytes(self._fernet.encrypt(pt))

    @staticmethod
    def _derive_key() -> bytes:
        # SHA-256 -> 32 bytes -> url-safe base64 = valid Fernet key
        digest = hashlib.sha256(_get_machine_id().encode()).digest()
        return base64.urlsafe_b64encode(digest)


class MemoryBackend:
    """Process-local store for ephemeral hosts and tests."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, ref_id: str) -> str | None:
        with self._lock:
            return self._values.get(ref_id)

    def set(self, ref_id: str, value: str) -> None:
        with self._lock:
            self._values[ref_id] = value

    def delete(self, ref_id: str) -> None:
        with self._lock:
            self._values.pop(ref_id, None)


def _get_machine_id() -> str:
    """Best-effort stable machine identifier."""
    machine_id_path = Path("/etc/machine-id")
    if machine_id_path.exists():
        mid = machine_id_path.read_text().strip()
        if mid:
            return mid
    return f"{platform.node()}-{platform.system()}-{os.getuid()}"


class KeyStore:
    """Maps opaque key identifiers to stored PKCS#8 keypairs.

    Usage::

        store = KeyStore(MemoryBackend())
        store.store("signing-key-1", "Ed25519", pkcs8_der)
        record = store.load("signing-key-1")
    """

    def __init__(self, backend: KeyStoreBackend) -> None:
        self._backend = backend

    @property
    def backend_name(self) -> str:
        return type(self._backend).__name__

    def store(self, key_id: str, algorithm: str, pkcs8: bytes) -> None:
        record = StoredKey(alg=algorithm, pkcs8=base64.b64encode(pkcs8).decode("ascii"))
        self._backend.set(key_id, record.model_dump_json())

    def load(self, key_id: str) -> tuple[str, bytes] | None:
        """Return ``(algorithm, pkcs8)`` for *key_id*, or None if it does not resolve."""
        value = self._backend.get(key_id)
        if value is None:
            return None
        try:
            record = StoredKey.model_validate_json(value)
            return record.alg, record.pkcs8_bytes()
        except (ValidationError, binascii.Error):
            logger.warning("stored key %r is malformed; treating it as missing", key_id)
            return None

    def delete(self, key_id: str) -> None:
        self._backend.delete(key_id)


def build_keystore(config: KeyStoreConfig) -> KeyStore | None:
    if config.backend == "none":
        return None
    if config.backend == "keyring":
        return KeyStore(KeyringBackend(config.service_name))
    if config.backend == "file":
        return KeyStore(EncryptedFileBackend(config.file_path))
    return KeyStore(MemoryBackend())


__all__ = [
    "EncryptedFileBackend",
    "KeyStore",
    "KeyStoreError",
    "KeyringBackend",
    "MemoryBackend",
    "StoredKey",
    "build_keystore",
]
