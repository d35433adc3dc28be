"""Bluetooth backend implementation using IOBluetooth through PyObjC."""

from __future__ import annotations

import logging
from typing import Any

from connectblue.core.errors import PlatformUnavailableError
from connectblue.core.model import DeviceHandle

LOGGER = logging.getLogger(__name__)

IO_RETURN_SUCCESS = 0


def _load_iobluetooth() -> Any:
    try:
        import IOBluetooth  # type: ignore
    except Exception as exc:  # pragma: no cover - import failure path
        raise PlatformUnavailableError(
            "Bluetooth backend requires 'pyobjc-framework-IOBluetooth' on macOS. Install dependency and retry."
        ) from exc
    return IOBluetooth


class IOBluetoothBackend:
    def __init__(self) -> None:
        self._framework: Any = None

    @property
    def framework(self) -> Any:
        if self._framework is None:
            self._framework = _load_iobluetooth()
        return self._framework

    def resolve(self, address: str) -> DeviceHandle | None:
        device = self.framework.IOBluetoothDevice.deviceWithAddressString_(address)
        if device is None:
            LOGGER.debug("IOBluetooth returned no device for %s", address)
            return None
        return DeviceHandle(address=address, native=device)

    def open_connection(self, handle: DeviceHandle) -> int:
        return int(handle.native.openConnection())

    def is_connected(self, handle: DeviceHandle) -> bool:
        return bool(handle.native.isConnected())

    def name(self, handle: DeviceHandle) -> str | None:
        name = handle.native.name()
        return str(name) if name else None
