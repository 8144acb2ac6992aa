"""Stable per-install device identity."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from pathlib import Path

from .const import STORAGE_KEY_DEVICE_ID
from .exceptions import EmbyStorageError
from .store import SecureStore

_LOGGER = logging.getLogger(__name__)

_MACHINE_ID_PATHS = (Path("/etc/machine-id"), Path("/var/lib/dbus/machine-id"))
_DEVICE_NAMESPACE = uuid.UUID("6f1c3d0e-2a49-4b8e-9a57-4d8a7c0e5b21")


def machine_scoped_id(app_name: str = "myemby") -> str | None:
    """Return an identifier stable for this machine and application.

    Derived from the OS machine id so it does not expose the raw value.
    Returns None where no machine id is available.
    """
    for path in _MACHINE_ID_PATHS:
        try:
            machine_id = path.read_text().strip()
        except OSError:
            continue
        if machine_id:
            return str(uuid.uuid5(_DEVICE_NAMESPACE, f"{app_name}:{machine_id}")).upper()
    return None


def random_device_id() -> str:
    """Return a fresh random identifier."""
    return str(uuid.uuid4()).upper()


class DeviceIdentityProvider:
    """Produces the device identifier sent with every request.

    The identifier is read from the secure store, or generated once and
    persisted. If the store fails, the generated value is kept in memory
    for the rest of the process so callers always get an answer.
    """

    def __init__(
        self,
        store: SecureStore,
        stable_id_factory: Callable[[], str | None] | None = machine_scoped_id,
    ) -> None:
        """Initialize the provider.

        Args:
            store: Secure store holding the persisted identifier.
            stable_id_factory: Returns a platform-stable identifier or None.
                Pass None to always use a random UUID.
        """
        self._store = store
        self._stable_id_factory = stable_id_factory
        self._device_id: str | None = None
        self._lock = asyncio.Lock()

    def _generate(self) -> str:
        if self._stable_id_factory is not None:
            stable = self._stable_id_factory()
            if stable:
                return stable
        return random_device_id()

    async def get_or_create_device_id(self) -> str:
        """Return the device identifier, creating and persisting it on first use."""
        if self._device_id is not None:
            return self._device_id

        async with self._lock:
            if self._device_id is not None:
                return self._device_id

            try:
                self._device_id = await self._store.get(STORAGE_KEY_DEVICE_ID, str)
                _LOGGER.debug("Loaded persisted device id")
                return self._device_id
            except EmbyStorageError as err:
                _LOGGER.debug("No usable persisted device id: %s", err)

            device_id = self._generate()
            try:
                await self._store.save(STORAGE_KEY_DEVICE_ID, device_id)
            except EmbyStorageError as err:
                _LOGGER.warning(
                    "Could not persist device id, using it for this run only: %s", err
                )
            self._device_id = device_id
            return device_id


__all__ = ["DeviceIdentityProvider", "machine_scoped_id", "random_device_id"]
