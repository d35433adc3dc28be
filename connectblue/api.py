"""Stable public API for building tooling on top of connectblue.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from pathlib import Path

from connectblue.backends.base import AudioBackend, BluetoothBackend
from connectblue.core.config_loader import load_config
from connectblue.core.errors import (
    AudioQueryError,
    AudioRouteError,
    AudioSwitchError,
    BluetoothConnectError,
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
    ConnectblueError,
    ConnectionOpenError,
    ConnectionTimeoutError,
    DeviceNotFoundError,
    PlatformUnavailableError,
)
from connectblue.core.model import (
    AppConfig,
    AudioOutputDevice,
    ConnectionOutcome,
    DeviceHandle,
    RouteResult,
    RouteState,
    TargetDevice,
    TransportKind,
)
from connectblue.core.service import RouteService

__all__ = [
    "ConnectblueError",
    "PlatformUnavailableError",
    "DeviceNotFoundError",
    "BluetoothConnectError",
    "ConnectionOpenError",
    "ConnectionTimeoutError",
    "AudioRouteError",
    "AudioQueryError",
    "AudioSwitchError",
    "ConfigError",
    "ConfigLoadError",
    "ConfigValidationError",
    "AppConfig",
    "AudioOutputDevice",
    "ConnectionOutcome",
    "DeviceHandle",
    "RouteResult",
    "RouteState",
    "TargetDevice",
    "TransportKind",
    "AudioBackend",
    "BluetoothBackend",
    "Client",
]


class Client:
    """Public client for the connect-and-route workflow.

    A `Client` wraps device resolution, connection polling, and CoreAudio
    default-output inspection/switching behind a stable API for scripts and
    other frontends. Backends default to the macOS implementations.
    """

    def __init__(
        self,
        *,
        bluetooth: BluetoothBackend | None = None,
        audio: AudioBackend | None = None,
        bluetooth_transport: int | None = None,
    ) -> None:
        self._service = RouteService(
            bluetooth=bluetooth,
            audio=audio,
            bluetooth_transport=bluetooth_transport,
        )

    @classmethod
    def from_config(
        cls,
        path: Path | None = None,
        *,
        bluetooth: BluetoothBackend | None = None,
        audio: AudioBackend | None = None,
    ) -> tuple[Client, AppConfig]:
        config = load_config(path)
        client = cls(bluetooth=bluetooth, audio=audio, bluetooth_transport=config.bluetooth_transport)
        return client, config

    def connect(self, target: TargetDevice) -> RouteResult:
        return self._service.run(target)

    def resolve_device(self, address: str) -> DeviceHandle:
        return self._service.resolve_device(address)

    def is_default_output(self, handle: DeviceHandle) -> bool:
        return self._service.is_default_output(handle)

    def set_default_output(self, name: str) -> AudioOutputDevice:
        return self._service.set_default_output(name)

    def list_outputs(self) -> list[AudioOutputDevice]:
        return self._service.list_outputs()

    def default_output(self) -> AudioOutputDevice | None:
        return self._service.default_output()
