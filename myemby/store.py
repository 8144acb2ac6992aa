"""Secure key-value storage for tokens and server settings.

Values are JSON-compatible objects. The file-backed store encrypts every
value with Fernet (AES-128-CBC + HMAC-SHA256) so nothing sensitive is
written to disk in the clear.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol, TypeVar, cast, runtime_checkable

from cryptography.fernet import Fernet, InvalidToken

from .exceptions import (
    EmbyDecodeError,
    EmbyStorageError,
    SecureStoreDecodeError,
    SecureStoreKeyNotFoundError,
)

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_PRIMITIVES: tuple[type, ...] = (str, int, float, bool, dict, list)


@runtime_checkable
class SecureStore(Protocol):
    """Encrypted-at-rest key-value store.

    ``get`` raises SecureStoreKeyNotFoundError when the key is absent and
    SecureStoreDecodeError when the stored value does not match the
    requested type. ``delete`` succeeds when the key is absent.
    """

    async def save(self, key: str, value: object) -> None:
        """Store a value under a key, replacing any previous value."""

    async def get(self, key: str, as_type: type[T]) -> T:
        """Return the value stored under a key, decoded as ``as_type``."""

    async def delete(self, key: str) -> None:
        """Remove a key."""

    async def exists(self, key: str) -> bool:
        """Return whether a key is present."""


def _encode(key: str, value: object) -> bytes:
    """Serialize a value to JSON bytes."""
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        value = to_dict()
    try:
        return json.dumps(value, separators=(",", ":")).encode()
    except (TypeError, ValueError) as err:
        raise EmbyStorageError(f"Cannot serialize value for {key!r}: {err}") from err


def _decode(key: str, raw: bytes, as_type: type[T]) -> T:
    """Deserialize JSON bytes into ``as_type``.

    Primitive and container types are checked with isinstance; any other
    type must provide a ``from_dict`` classmethod.
    """
    try:
        value: Any = json.loads(raw)
    except ValueError as err:
        raise SecureStoreDecodeError(f"Stored value for {key!r} is not JSON") from err

    if as_type in _PRIMITIVES:
        if not isinstance(value, as_type):
            raise SecureStoreDecodeError(
                f"Stored value for {key!r} is {type(value).__name__}, "
                f"expected {as_type.__name__}"
            )
        return cast(T, value)

    from_dict = getattr(as_type, "from_dict", None)
    if from_dict is None:
        raise SecureStoreDecodeError(f"Cannot decode {as_type.__name__} for {key!r}")
    try:
        return cast(T, from_dict(value))
    except EmbyDecodeError as err:
        raise SecureStoreDecodeError(f"Stored value for {key!r} has the wrong shape") from err


class MemorySecureStore:
    """Process-local store.

    Keeps serialized bytes rather than live objects so decoding behaves
    exactly as it does for the file store.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._data: dict[str, bytes] = {}

    async def save(self, key: str, value: object) -> None:
        """Store a value under a key."""
        self._data[key] = _encode(key, value)

    async def get(self, key: str, as_type: type[T]) -> T:
        """Return the value stored under a key."""
        try:
            raw = self._data[key]
        except KeyError as err:
            raise SecureStoreKeyNotFoundError(key) from err
        return _decode(key, raw, as_type)

    async def delete(self, key: str) -> None:
        """Remove a key; absent keys are ignored."""
        self._data.pop(key, None)

    async def exists(self, key: str) -> bool:
        """Return whether a key is present."""
        return key in self._data


class EncryptedFileStore:
    """Fernet-encrypted store with one file per key.

    File names are SHA-256 digests of the keys. Writes go to a temporary
    file that is atomically renamed over the target.

    Attributes:
        directory: Directory holding the encrypted files.
    """

    def __init__(self, directory: Path | str, encryption_key: bytes) -> None:
        """Initialize the store.

        Args:
            directory: Directory for the encrypted files; created if missing.
            encryption_key: URL-safe base64 Fernet key.

        Raises:
            ValueError: The encryption key is malformed.
        """
        self.directory = Path(directory)
        self._fernet = Fernet(encryption_key)

    @classmethod
    def from_key_file(cls, directory: Path | str, key_file: Path | str) -> EncryptedFileStore:
        """Open a store whose key lives in ``key_file``, creating it if needed."""
        return cls(directory, load_or_create_key(Path(key_file)))

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode()).hexdigest()
        return self.directory / f"{digest}.bin"

    def _write(self, key: str, payload: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True, mode=0o700)
        target = self._path(key)
        tmp = target.with_suffix(".tmp")
        try:
            tmp.write_bytes(self._fernet.encrypt(payload))
            os.chmod(tmp, 0o600)
            os.replace(tmp, target)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise

    def _read(self, key: str) -> bytes:
        token = self._path(key).read_bytes()
        try:
            return self._fernet.decrypt(token)
        except InvalidToken as err:
            raise SecureStoreDecodeError(
                f"Stored value for {key!r} cannot be decrypted with this key"
            ) from err

    async def save(self, key: str, value: object) -> None:
        """Encrypt and store a value under a key."""
        payload = _encode(key, value)
        try:
            await asyncio.to_thread(self._write, key, payload)
        except OSError as err:
            _LOGGER.error("Failed to write secure store key %s: %s", key, err)
            raise EmbyStorageError(f"Failed to write {key!r}: {err}") from err

    async def get(self, key: str, as_type: type[T]) -> T:
        """Decrypt and return the value stored under a key."""
        try:
            raw = await asyncio.to_thread(self._read, key)
        except FileNotFoundError as err:
            raise SecureStoreKeyNotFoundError(key) from err
        except OSError as err:
            raise EmbyStorageError(f"Failed to read {key!r}: {err}") from err
        return _decode(key, raw, as_type)

    async def delete(self, key: str) -> None:
        """Remove a key; absent keys are ignored."""
        try:
            await asyncio.to_thread(self._path(key).unlink, missing_ok=True)
        except OSError as err:
            _LOGGER.error("Failed to delete secure store key %s: %s", key, err)
            raise EmbyStorageError(f"Failed to delete {key!r}: {err}") from err

    async def exists(self, key: str) -> bool:
        """Return whether a key is present."""
        return await asyncio.to_thread(self._path(key).is_file)


def load_or_create_key(key_file: Path) -> bytes:
    """Read a Fernet key, generating it with owner-only permissions if absent.

    Args:
        key_file: Path of the key file.

    Returns:
        The key bytes.
    """
    if key_file.is_file():
        return key_file.read_bytes().strip()

    key = Fernet.generate_key()
    key_file.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
    fd = os.open(key_file, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "wb") as handle:
        handle.write(key)
    _LOGGER.info("Created new secure store key at %s", key_file)
    return key


__all__ = [
    "EncryptedFileStore",
    "MemorySecureStore",
    "SecureStore",
    "load_or_create_key",
]
