"""Audio backend implementation using CoreAudio through PyObjC.

Property reads follow the usual CoreAudio pattern of asking for the data size
first and then fetching exactly that many bytes, so device enumeration has no
fixed ceiling.
"""

from __future__ import annotations

import logging
import struct
from typing import Any

from connectblue.core.errors import AudioQueryError, PlatformUnavailableError
from connectblue.core.model import fourcc

LOGGER = logging.getLogger(__name__)

NO_ERR = 0
BLUETOOTH_TRANSPORT_FALLBACK = fourcc("blue")
_UINT32 = struct.Struct("=I")
_POINTER = struct.Struct("@P")


def _load_coreaudio() -> Any:
    try:
        import CoreAudio  # type: ignore
    except Exception as exc:  # pragma: no cover - import failure path
        raise PlatformUnavailableError(
            "Audio backend requires 'pyobjc-framework-CoreAudio' on macOS. Install dependency and retry."
        ) from exc
    return CoreAudio


def _string_from_ref(data: bytes) -> str | None:
    """Copy a CFStringRef returned by CoreAudio into a Python string.

    CoreAudio hands back the name already retained and wrapping the pointer
    retains it again, so the caller's reference is released once copied.
    """
    try:
        import CoreFoundation  # type: ignore
        import objc  # type: ignore
    except Exception as exc:  # pragma: no cover - import failure path
        raise PlatformUnavailableError(
            "Audio backend requires 'pyobjc-core' and 'pyobjc-framework-Cocoa' on macOS."
        ) from exc

    (pointer,) = _POINTER.unpack_from(data)
    if not pointer:
        return None
    ref = objc.objc_object(c_void_p=pointer)
    try:
        return str(ref)
    finally:
        CoreFoundation.CFRelease(ref)


class CoreAudioBackend:
    def __init__(self) -> None:
        self._framework: Any = None

    @property
    def framework(self) -> Any:
        if self._framework is None:
            self._framework = _load_coreaudio()
        return self._framework

    def _address(self, selector: int, *, output_scope: bool = False) -> Any:
        ca = self.framework
        return ca.AudioObjectPropertyAddress(
            mSelector=selector,
            mScope=ca.kAudioObjectPropertyScopeOutput if output_scope else ca.kAudioObjectPropertyScopeGlobal,
            mElement=ca.kAudioObjectPropertyElementMain,
        )

    def _data_size(self, object_id: int, address: Any) -> int | None:
        status, size = self.framework.AudioObjectGetPropertyDataSize(object_id, address, 0, None, None)
        if status != NO_ERR:
            LOGGER.debug("Size query failed for object %s with status %s", object_id, status)
            return None
        return int(size)

    def _read(self, object_id: int, address: Any, size: int) -> bytes | None:
        status, out_size, data = self.framework.AudioObjectGetPropertyData(
            object_id, address, 0, None, size, None
        )
        if status != NO_ERR or data is None:
            LOGGER.debug("Property read failed for object %s with status %s", object_id, status)
            return None
        return bytes(data)[: int(out_size)]

    def _read_uint32(self, object_id: int, selector: int) -> int | None:
        data = self._read(object_id, self._address(selector), _UINT32.size)
        if data is None or len(data) < _UINT32.size:
            return None
        return _UINT32.unpack_from(data)[0]

    def default_output_device_id(self) -> int | None:
        ca = self.framework
        device_id = self._read_uint32(ca.kAudioObjectSystemObject, ca.kAudioHardwarePropertyDefaultOutputDevice)
        # kAudioObjectUnknown
        if not device_id:
            return None
        return device_id

    def transport_code(self, device_id: int) -> int | None:
        return self._read_uint32(device_id, self.framework.kAudioDevicePropertyTransportType)

    def name(self, device_id: int) -> str | None:
        address = self._address(self.framework.kAudioObjectPropertyName)
        size = self._data_size(device_id, address)
        if not size:
            return None
        data = self._read(device_id, address, size)
        if data is None or len(data) < _POINTER.size:
            return None
        return _string_from_ref(data)

    def _all_device_ids(self) -> list[int]:
        ca = self.framework
        address = self._address(ca.kAudioHardwarePropertyDevices)
        size = self._data_size(ca.kAudioObjectSystemObject, address)
        if size is None:
            raise AudioQueryError("Failed to get audio devices: device list size query failed")
        if size == 0:
            return []
        data = self._read(ca.kAudioObjectSystemObject, address, size)
        if data is None:
            raise AudioQueryError("Failed to get audio devices")
        count = len(data) // _UINT32.size
        return list(struct.unpack_from(f"={count}I", data))

    def _has_output_streams(self, device_id: int) -> bool:
        address = self._address(self.framework.kAudioDevicePropertyStreams, output_scope=True)
        size = self._data_size(device_id, address)
        return bool(size)

    def list_output_devices(self) -> list[int]:
        device_ids = self._all_device_ids()
        outputs = [device_id for device_id in device_ids if self._has_output_streams(device_id)]
        LOGGER.debug("Found %d audio devices, %d with output streams", len(device_ids), len(outputs))
        return outputs

    def set_default_output(self, device_id: int) -> int:
        ca = self.framework
        payload = _UINT32.pack(device_id)
        return int(
            ca.AudioObjectSetPropertyData(
                ca.kAudioObjectSystemObject,
                self._address(ca.kAudioHardwarePropertyDefaultOutputDevice),
                0,
                None,
                len(payload),
                payload,
            )
        )

    def bluetooth_transport_code(self) -> int:
        return int(getattr(self.framework, "kAudioDeviceTransportTypeBluetooth", BLUETOOTH_TRANSPORT_FALLBACK))
