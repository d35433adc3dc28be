from __future__ import annotations

import pytest

from connectblue.core.model import DeviceHandle, fourcc

HEADPHONES_MAC = "00:A4:1C:CA:4B:D9"
BLUETOOTH = fourcc("blue")
BUILT_IN = fourcc("bltn")


class FakeBluetooth:
    """Bluetooth backend whose connection state follows a scripted sequence.

    ``connected`` is consumed one value per ``is_connected`` call; the last
    value repeats once the sequence is exhausted.
    """

    def __init__(
        self,
        *,
        known: tuple[str, ...] = (HEADPHONES_MAC,),
        name: str | None = "Foo Headphones",
        connected: tuple[bool, ...] = (False,),
        open_status: int = 0,
    ) -> None:
        self.known = known
        self.device_name = name
        self.connected = list(connected)
        self.open_status = open_status
        self.calls: list[tuple[str, str]] = []

    def resolve(self, address: str) -> DeviceHandle | None:
        self.calls.append(("resolve", address))
        if address not in self.known:
            return None
        return DeviceHandle(address=address, native=object())

    def open_connection(self, handle: DeviceHandle) -> int:
        self.calls.append(("open_connection", handle.address))
        return self.open_status

    def is_connected(self, handle: DeviceHandle) -> bool:
        self.calls.append(("is_connected", handle.address))
        if len(self.connected) > 1:
            return self.connected.pop(0)
        return self.connected[0]

    def name(self, handle: DeviceHandle) -> str | None:
        return self.device_name

    def count(self, method: str) -> int:
        return sum(1 for call, _ in self.calls if call == method)


class FakeAudio:
    def __init__(
        self,
        devices: dict[int, tuple[str | None, int | None]] | None = None,
        *,
        default: int | None = None,
        set_status: int = 0,
    ) -> None:
        self.devices = devices if devices is not None else {}
        self.default = default
        self.set_status = set_status
        self.calls: list[tuple[str, object]] = []

    def default_output_device_id(self) -> int | None:
        self.calls.append(("default_output_device_id", None))
        return self.default

    def transport_code(self, device_id: int) -> int | None:
        self.calls.append(("transport_code", device_id))
        return self.devices[device_id][1]

    def name(self, device_id: int) -> str | None:
        self.calls.append(("name", device_id))
        return self.devices[device_id][0]

    def list_output_devices(self) -> list[int]:
        self.calls.append(("list_output_devices", None))
        return list(self.devices)

    def set_default_output(self, device_id: int) -> int:
        self.calls.append(("set_default_output", device_id))
        if self.set_status == 0:
            self.default = device_id
        return self.set_status

    def bluetooth_transport_code(self) -> int:
        return BLUETOOTH

    def set_calls(self) -> list[object]:
        return [arg for call, arg in self.calls if call == "set_default_output"]


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
