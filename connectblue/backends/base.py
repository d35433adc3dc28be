"""Platform backend interfaces."""

from __future__ import annotations

from typing import Protocol

from connectblue.core.model import DeviceHandle


class BluetoothBackend(Protocol):
    def resolve(self, address: str) -> DeviceHandle | None:
        """Return a handle for a paired or previously seen device, or None."""

    def open_connection(self, handle: DeviceHandle) -> int:
        """Request a baseband connection and return the platform status code."""

    def is_connected(self, handle: DeviceHandle) -> bool:
        ...

    def name(self, handle: DeviceHandle) -> str | None:
        ...


class AudioBackend(Protocol):
    def default_output_device_id(self) -> int | None:
        ...

    def transport_code(self, device_id: int) -> int | None:
        ...

    def name(self, device_id: int) -> str | None:
        ...

    def list_output_devices(self) -> list[int]:
        """Return ids of all devices with at least one output stream."""

    def set_default_output(self, device_id: int) -> int:
        """Make ``device_id`` the system default output and return the status code."""

    def bluetooth_transport_code(self) -> int:
        ...
