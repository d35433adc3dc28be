"""Name matching between Bluetooth devices and CoreAudio output devices."""

from __future__ import annotations

import re
from collections.abc import Iterable

from connectblue.core.model import AudioOutputDevice

_ADDRESS_RE = re.compile(r"^([0-9a-f]{2}[:-]){5}([0-9a-f]{2})$", re.IGNORECASE)


def normalize_address(address: str) -> str | None:
    """Return the address upper-cased with ``:`` separators, or None if malformed."""
    candidate = str(address).strip()
    if not _ADDRESS_RE.match(candidate):
        return None
    return candidate.replace("-", ":").upper()


def route_name_matches(audio_name: str, bluetooth_name: str) -> bool:
    # CoreAudio may append suffixes to the Bluetooth name, so a prefix counts.
    audio_lower = audio_name.lower()
    bluetooth_lower = bluetooth_name.lower()
    if audio_lower == bluetooth_lower:
        return True
    return audio_lower.startswith(bluetooth_lower)


def find_exact(devices: Iterable[AudioOutputDevice], name: str) -> AudioOutputDevice | None:
    """First device whose name equals ``name`` exactly (case-sensitive)."""
    for device in devices:
        if device.name == name:
            return device
    return None
