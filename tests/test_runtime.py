import pytest

from livehub.runtime import LiveRuntime, Signal


def test_signal_emits_to_all_slots_in_order():
    signal = Signal()
    calls = []
    signal.connect(lambda *a: calls.append(("first", a)))
    signal.connect(lambda *a: calls.append(("second", a)))
    signal.emit(1, "x")
    assert calls == [("first", (1, "x")), ("second", (1, "x"))]


def test_signal_disconnect_stops_delivery():
    signal = Signal()
    calls = []
    slot = calls.append
    signal.connect(slot)
    signal.disconnect(slot)
    signal.emit(5)
    assert calls == []
    assert len(signal) == 0


def test_signal_disconnect_unknown_raises():
    with pytest.raises(ValueError):
        Signal().disconnect(print)


def test_runtime_defaults_to_zero():
    runtime = LiveRuntime()
    assert runtime.screen_width == 0
    assert runtime.screen_height == 0


def test_width_change_emits_once():
    runtime = LiveRuntime()
    seen = []
    runtime.screen_width_changed.connect(seen.append)
    runtime.screen_width = 640
    runtime.screen_width = 640
    assert seen == [640]
    assert runtime.screen_width == 640


def test_height_change_emits_only_on_change():
    runtime = LiveRuntime()
    seen = []
    runtime.screen_height_changed.connect(seen.append)
    runtime.screen_height = 0
    runtime.screen_height = 480
    runtime.screen_height = 240
    assert seen == [480, 240]
    assert runtime.screen_height == 240