"""Service layer used by the CLI and the public API."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator

from connectblue.backends.base import AudioBackend, BluetoothBackend
from connectblue.backends.coreaudio import CoreAudioBackend
from connectblue.backends.iobluetooth import IO_RETURN_SUCCESS, IOBluetoothBackend
from connectblue.core.errors import (
    AudioSwitchError,
    ConnectionOpenError,
    ConnectionTimeoutError,
    DeviceNotFoundError,
)
from connectblue.core.model import (
    AudioOutputDevice,
    ConnectionOutcome,
    DeviceHandle,
    RouteResult,
    RouteState,
    TargetDevice,
    fourcc_str,
)
from connectblue.core.name_match import find_exact, normalize_address, route_name_matches

LOGGER = logging.getLogger(__name__)


class RouteService:
    def __init__(
        self,
        *,
        bluetooth: BluetoothBackend | None = None,
        audio: AudioBackend | None = None,
        bluetooth_transport: int | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.bluetooth = bluetooth or IOBluetoothBackend()
        self.audio = audio or CoreAudioBackend()
        self._bluetooth_transport = bluetooth_transport
        self._clock = clock
        self._sleep = sleep

    @property
    def bluetooth_transport(self) -> int:
        if self._bluetooth_transport is None:
            self._bluetooth_transport = self.audio.bluetooth_transport_code()
            LOGGER.debug("Bluetooth transport code resolved to '%s'", fourcc_str(self._bluetooth_transport))
        return self._bluetooth_transport

    def resolve_device(self, address: str) -> DeviceHandle:
        normalized = normalize_address(address)
        if normalized is None:
            raise DeviceNotFoundError(f"Could not find device at address {address} (malformed address)")
        handle = self.bluetooth.resolve(normalized)
        if handle is None:
            raise DeviceNotFoundError(f"Could not find device at address {address}")
        return handle

    def _display(self, handle: DeviceHandle) -> str:
        return self.bluetooth.name(handle) or handle.address

    def is_default_output(self, handle: DeviceHandle) -> bool:
        """Whether the system default output looks like this Bluetooth device.

        CoreAudio exposes no link from an audio device to its Bluetooth
        device, so this compares names: the default output must use the
        Bluetooth transport and its name must equal the Bluetooth name or
        start with it, ignoring case. Any failed read counts as False.
        """
        device_id = self.audio.default_output_device_id()
        if device_id is None:
            LOGGER.debug("No default output device")
            return False

        transport = self.audio.transport_code(device_id)
        if transport != self.bluetooth_transport:
            LOGGER.debug(
                "Default output %s is not Bluetooth (transport %s)",
                device_id,
                fourcc_str(transport) if transport is not None else "<unreadable>",
            )
            return False

        audio_name = self.audio.name(device_id)
        if audio_name is None:
            LOGGER.debug("Could not read name of default output %s", device_id)
            return False

        target_name = self._display(handle)
        matched = route_name_matches(audio_name, target_name)
        LOGGER.debug("Default output '%s' vs Bluetooth device '%s': %s", audio_name, target_name, matched)
        return matched

    def wait_for_connection(self, handle: DeviceHandle, timeout_s: float, poll_interval_s: float) -> bool:
        deadline = self._clock() + timeout_s
        while self._clock() < deadline:
            if self.bluetooth.is_connected(handle):
                return True
            self._sleep(poll_interval_s)
        # The device may connect between the last poll and the deadline.
        return self.bluetooth.is_connected(handle)

    def connect_and_wait(self, handle: DeviceHandle, target: TargetDevice) -> ConnectionOutcome:
        display = self._display(handle)
        if self.bluetooth.is_connected(handle) and self.is_default_output(handle):
            LOGGER.info(
                "Device %s is already connected and set as default audio output. Skipping connect.", display
            )
            return ConnectionOutcome(handle=handle, connected=True, already_routed=True)

        status = self.bluetooth.open_connection(handle)
        LOGGER.info("Open connection returned: %s", status)
        if status != IO_RETURN_SUCCESS:
            LOGGER.info("Failed to open connection to %s with status %s", display, status)
            return ConnectionOutcome(handle=handle, connected=False, open_status=status)

        connected = self.wait_for_connection(handle, target.connect_timeout_s, target.poll_interval_s)
        LOGGER.info("Wait-for-connection result for %s: %s", display, connected)
        return ConnectionOutcome(handle=handle, connected=connected, open_status=status)

    def iter_outputs(self) -> Iterator[AudioOutputDevice]:
        for device_id in self.audio.list_output_devices():
            name = self.audio.name(device_id)
            if name is None:
                LOGGER.debug("Skipping audio device %s: name unreadable", device_id)
                continue
            yield AudioOutputDevice(id=device_id, name=name, transport_code=self.audio.transport_code(device_id))

    def list_outputs(self) -> list[AudioOutputDevice]:
        return list(self.iter_outputs())

    def default_output(self) -> AudioOutputDevice | None:
        device_id = self.audio.default_output_device_id()
        if device_id is None:
            return None
        name = self.audio.name(device_id)
        if name is None:
            return None
        return AudioOutputDevice(id=device_id, name=name, transport_code=self.audio.transport_code(device_id))

    def set_default_output(self, name: str) -> AudioOutputDevice:
        device = find_exact(self.iter_outputs(), name)
        if device is None:
            raise AudioSwitchError(f"Audio device {name} not found")

        status = self.audio.set_default_output(device.id)
        if status != 0:
            raise AudioSwitchError(f"Failed to set output to {name}: status {status}")
        LOGGER.info("Switched output to %s", name)
        return device

    def run(self, target: TargetDevice) -> RouteResult:
        """Resolve, connect, and route system audio to ``target``.

        Each failure raises the matching ConnectblueError; there is no retry.
        """
        LOGGER.info("Attempting connection to %s (%s)", target.display_name, target.address)
        handle = self.resolve_device(target.address)

        outcome = self.connect_and_wait(handle, target)
        if not outcome.connected:
            if outcome.open_status is not None and outcome.open_status != IO_RETURN_SUCCESS:
                raise ConnectionOpenError(
                    f"Failed to open connection to {target.display_name} (status {outcome.open_status})"
                )
            raise ConnectionTimeoutError(
                f"Timed out waiting for Bluetooth connection to {target.display_name} "
                f"after {target.connect_timeout_s:g}s"
            )

        if outcome.already_routed or self.is_default_output(handle):
            LOGGER.info("Default output already set to %s. No switch needed.", target.display_name)
            return RouteResult(target=target, handle=handle, state=RouteState.ALREADY_ROUTED)

        LOGGER.info("Bluetooth connected, switching system output to %s", target.display_name)
        self.set_default_output(target.display_name)
        return RouteResult(target=target, handle=handle, state=RouteState.SWITCHED)
