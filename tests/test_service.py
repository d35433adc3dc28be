from __future__ import annotations

import pytest
from conftest import BLUETOOTH, BUILT_IN, HEADPHONES_MAC, FakeAudio, FakeBluetooth, FakeClock

from connectblue.core.errors import (
    AudioQueryError,
    AudioSwitchError,
    ConnectionOpenError,
    ConnectionTimeoutError,
    DeviceNotFoundError,
)
from connectblue.core.model import DeviceHandle, RouteState, TargetDevice
from connectblue.core.service import RouteService

TARGET = TargetDevice(
    address=HEADPHONES_MAC,
    display_name="Foo Headphones",
    connect_timeout_s=20.0,
    poll_interval_s=0.5,
)


def _service(bluetooth: FakeBluetooth, audio: FakeAudio, clock: FakeClock) -> RouteService:
    return RouteService(bluetooth=bluetooth, audio=audio, clock=clock, sleep=clock.sleep)


def test_unresolvable_address_reports_not_found_without_audio_calls(clock: FakeClock) -> None:
    bluetooth = FakeBluetooth(known=())
    audio = FakeAudio({1: ("Foo Headphones", BLUETOOTH)}, default=1)
    service = _service(bluetooth, audio, clock)

    with pytest.raises(DeviceNotFoundError) as exc:
        service.run(TARGET)

    assert exc.value.exit_code == 1
    assert audio.calls == []
    assert bluetooth.count("open_connection") == 0


def test_malformed_address_never_reaches_bluetooth_layer(clock: FakeClock) -> None:
    bluetooth = FakeBluetooth()
    service = _service(bluetooth, FakeAudio(), clock)

    with pytest.raises(DeviceNotFoundError):
        service.resolve_device("not-a-mac")
    assert bluetooth.calls == []


def test_resolve_normalizes_address(clock: FakeClock) -> None:
    bluetooth = FakeBluetooth()
    service = _service(bluetooth, FakeAudio(), clock)

    handle = service.resolve_device("00-a4-1c-ca-4b-d9")
    assert handle.address == HEADPHONES_MAC
    assert bluetooth.calls == [("resolve", HEADPHONES_MAC)]


def test_wait_returns_true_once_device_connects(clock: FakeClock) -> None:
    bluetooth = FakeBluetooth(connected=(False, False, False, True))
    service = _service(bluetooth, FakeAudio(), clock)

    assert service.wait_for_connection(DeviceHandle(address=HEADPHONES_MAC), 20.0, 0.5) is True
    assert clock.now == pytest.approx(1.5)


def test_wait_gives_up_after_timeout(clock: FakeClock) -> None:
    bluetooth = FakeBluetooth(connected=(False,))
    service = _service(bluetooth, FakeAudio(), clock)

    assert service.wait_for_connection(DeviceHandle(address=HEADPHONES_MAC), 5.0, 0.5) is False
    assert 5.0 <= clock.now <= 5.5


def test_wait_checks_once_more_after_deadline(clock: FakeClock) -> None:
    # Two polls fit in a 1s window at 0.5s, then the final check sees the connection.
    bluetooth = FakeBluetooth(connected=(False, False, True))
    service = _service(bluetooth, FakeAudio(), clock)

    assert service.wait_for_connection(DeviceHandle(address=HEADPHONES_MAC), 1.0, 0.5) is True
    assert clock.sleeps == [0.5, 0.5]
    assert bluetooth.count("is_connected") == 3


def test_already_connected_and_routed_skips_open_connection(clock: FakeClock) -> None:
    bluetooth = FakeBluetooth(connected=(True,))
    audio = FakeAudio({7: ("Foo Headphones", BLUETOOTH)}, default=7)
    service = _service(bluetooth, audio, clock)

    outcome = service.connect_and_wait(DeviceHandle(address=HEADPHONES_MAC), TARGET)
    assert outcome.connected is True
    assert outcome.already_routed is True
    assert bluetooth.count("open_connection") == 0

    result = service.run(TARGET)
    assert result.state is RouteState.ALREADY_ROUTED
    assert audio.set_calls() == []


def test_connects_within_two_seconds_and_already_default(clock: FakeClock) -> None:
    bluetooth = FakeBluetooth(connected=(False, False, False, False, False, True))
    audio = FakeAudio({7: ("Foo Headphones", BLUETOOTH)}, default=7)
    service = _service(bluetooth, audio, clock)

    result = service.run(TARGET)

    assert result.state is RouteState.ALREADY_ROUTED
    assert bluetooth.count("open_connection") == 1
    assert clock.now <= 2.0
    assert audio.set_calls() == []


def test_built_in_default_is_switched_to_headphones(clock: FakeClock) -> None:
    bluetooth = FakeBluetooth(connected=(False, True))
    audio = FakeAudio(
        {
            1: ("Built-in Speakers", BUILT_IN),
            7: ("Foo Headphones", BLUETOOTH),
        },
        default=1,
    )
    service = _service(bluetooth, audio, clock)

    result = service.run(TARGET)

    assert result.state is RouteState.SWITCHED
    assert audio.set_calls() == [7]


def test_open_connection_failure_skips_poll_loop(clock: FakeClock) -> None:
    bluetooth = FakeBluetooth(connected=(False,), open_status=-536870212)
    audio = FakeAudio({1: ("Built-in Speakers", BUILT_IN)}, default=1)
    service = _service(bluetooth, audio, clock)

    with pytest.raises(ConnectionOpenError) as exc:
        service.run(TARGET)

    assert exc.value.exit_code == 2
    assert clock.sleeps == []
    # Only the initial already-connected check, no polling.
    assert bluetooth.count("is_connected") == 1
    assert audio.set_calls() == []


def test_never_connecting_raises_timeout(clock: FakeClock) -> None:
    bluetooth = FakeBluetooth(connected=(False,))
    audio = FakeAudio({1: ("Built-in Speakers", BUILT_IN)}, default=1)
    service = _service(bluetooth, audio, clock)

    with pytest.raises(ConnectionTimeoutError) as exc:
        service.run(TARGET)

    assert exc.value.exit_code == 2
    assert 20.0 <= clock.now <= 20.5
    assert audio.set_calls() == []


def test_switch_fails_when_target_not_enumerated(clock: FakeClock) -> None:
    bluetooth = FakeBluetooth(connected=(True,))
    audio = FakeAudio({1: ("Built-in Speakers", BUILT_IN)}, default=1)
    service = _service(bluetooth, audio, clock)

    with pytest.raises(AudioSwitchError) as exc:
        service.run(TARGET)

    assert "not found" in str(exc.value)
    assert exc.value.exit_code == 3


def test_switch_reports_failed_write(clock: FakeClock) -> None:
    audio = FakeAudio({7: ("Foo Headphones", BLUETOOTH)}, set_status=1852797029)
    service = _service(FakeBluetooth(), audio, clock)

    with pytest.raises(AudioSwitchError):
        service.set_default_output("Foo Headphones")
    assert audio.set_calls() == [7]


def test_switch_matches_case_sensitively() -> None:
    audio = FakeAudio({3: ("Foo", BLUETOOTH), 4: ("foo", BLUETOOTH)})
    service = RouteService(bluetooth=FakeBluetooth(), audio=audio)

    picked = service.set_default_output("foo")
    assert picked.id == 4
    assert audio.set_calls() == [4]


def test_switch_skips_devices_with_unreadable_names() -> None:
    audio = FakeAudio({2: (None, BUILT_IN), 7: ("Foo Headphones", BLUETOOTH)})
    service = RouteService(bluetooth=FakeBluetooth(), audio=audio)

    assert service.set_default_output("Foo Headphones").id == 7


def test_switch_propagates_enumeration_failure() -> None:
    class BrokenAudio(FakeAudio):
        def list_output_devices(self) -> list[int]:
            raise AudioQueryError("Failed to get audio devices")

    service = RouteService(bluetooth=FakeBluetooth(), audio=BrokenAudio())
    with pytest.raises(AudioQueryError):
        service.set_default_output("Foo Headphones")


def test_list_outputs_and_default_output() -> None:
    audio = FakeAudio(
        {1: ("Built-in Speakers", BUILT_IN), 2: (None, None), 7: ("Foo Headphones", BLUETOOTH)},
        default=7,
    )
    service = RouteService(bluetooth=FakeBluetooth(), audio=audio)

    outputs = service.list_outputs()
    assert [device.name for device in outputs] == ["Built-in Speakers", "Foo Headphones"]
    assert outputs[1].transport_kind.name == "BLUETOOTH"

    current = service.default_output()
    assert current is not None
    assert current.id == 7


def test_configured_transport_code_overrides_backend() -> None:
    audio = FakeAudio({7: ("Foo Headphones", BUILT_IN)}, default=7)
    service = RouteService(bluetooth=FakeBluetooth(), audio=audio, bluetooth_transport=BUILT_IN)

    assert service.is_default_output(DeviceHandle(address=HEADPHONES_MAC)) is True
