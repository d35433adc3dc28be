"""Core data models used across backends, service, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_CONNECT_TIMEOUT_S = 20.0
DEFAULT_POLL_INTERVAL_S = 0.5


def fourcc(code: str) -> int:
    """Pack a four-character code such as ``"blue"`` into its integer form."""
    raw = code.encode("ascii")
    if len(raw) != 4:
        raise ValueError(f"Four-character code must be 4 ASCII characters, got {code!r}")
    return int.from_bytes(raw, "big")


def fourcc_str(value: int) -> str:
    try:
        return value.to_bytes(4, "big").decode("ascii")
    except (OverflowError, UnicodeDecodeError):
        return f"0x{value:08x}"


class TransportKind(Enum):
    BLUETOOTH = fourcc("blue")
    BLUETOOTH_LE = fourcc("blea")
    BUILT_IN = fourcc("bltn")
    USB = fourcc("usb ")
    AGGREGATE = fourcc("grup")
    VIRTUAL = fourcc("virt")
    HDMI = fourcc("hdmi")
    DISPLAY_PORT = fourcc("dprt")
    AIRPLAY = fourcc("airp")
    THUNDERBOLT = fourcc("thun")
    PCI = fourcc("pci ")
    AVB = fourcc("eavb")
    FIREWIRE = fourcc("1394")
    UNKNOWN = 0

    @classmethod
    def from_code(cls, code: int | None) -> TransportKind:
        if code is None:
            return cls.UNKNOWN
        try:
            return cls(code)
        except ValueError:
            return cls.UNKNOWN


class RouteState(Enum):
    ALREADY_ROUTED = "already_routed"
    SWITCHED = "switched"


@dataclass(frozen=True)
class TargetDevice:
    address: str
    display_name: str
    connect_timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S


@dataclass(frozen=True)
class DeviceHandle:
    address: str
    native: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class ConnectionOutcome:
    handle: DeviceHandle | None
    connected: bool
    already_routed: bool = False
    open_status: int | None = None


@dataclass(frozen=True)
class AudioOutputDevice:
    id: int
    name: str
    transport_code: int | None = None

    @property
    def transport_kind(self) -> TransportKind:
        return TransportKind.from_code(self.transport_code)


@dataclass(frozen=True)
class RouteResult:
    target: TargetDevice
    handle: DeviceHandle
    state: RouteState


@dataclass(frozen=True)
class AppConfig:
    profiles: dict[str, TargetDevice] = field(default_factory=dict)
    default_profile: str | None = None
    bluetooth_transport: int | None = None
