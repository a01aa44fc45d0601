import pytest
from unittest.mock import patch

from auto_brightness.brightness_service import (
    NO_DEVICE_MESSAGE,
    BrightnessApplier,
    MonitorHandle,
    ScreenBrightnessPrimitive,
)


class FakePrimitive:
    def __init__(self, ok=True, error=None):
        self.ok = ok
        self.error = error
        self.calls = []

    def set_brightness(self, percent):
        self.calls.append(percent)
        return self.ok, self.error


class TestBrightnessApplier:
    """Tests for idempotent brightness application"""

    def test_same_target_is_applied_once(self):
        primitive = FakePrimitive()
        applier = BrightnessApplier(primitive)

        assert applier.apply(50).ok
        assert applier.apply(50).ok
        assert primitive.calls == [50]
        assert applier.last_applied == 50

    def test_different_target_is_applied_again(self):
        primitive = FakePrimitive()
        applier = BrightnessApplier(primitive)

        applier.apply(50)
        applier.apply(60)
        assert primitive.calls == [50, 60]

    def test_target_is_clamped(self):
        primitive = FakePrimitive()
        applier = BrightnessApplier(primitive)

        applier.apply(150)
        applier.apply(-20)
        assert primitive.calls == [100, 0]

    def test_failure_keeps_state_and_retries(self):
        primitive = FakePrimitive(ok=False, error=NO_DEVICE_MESSAGE)
        applier = BrightnessApplier(primitive)

        result = applier.apply(40)
        assert not result.ok
        assert result.reason == NO_DEVICE_MESSAGE
        assert applier.last_applied is None

        primitive.ok = True
        assert applier.apply(40).ok
        assert primitive.calls == [40, 40]
        assert applier.last_applied == 40

    def test_primitive_exception_is_a_failure(self):
        class ExplodingPrimitive:
            def set_brightness(self, percent):
                raise RuntimeError("driver crashed")

        result = BrightnessApplier(ExplodingPrimitive()).apply(30)
        assert not result.ok
        assert result.reason == "driver crashed"

    def test_reset_forces_next_apply(self):
        primitive = FakePrimitive()
        applier = BrightnessApplier(primitive)

        applier.apply(70)
        applier.reset()
        applier.apply(70)
        assert primitive.calls == [70, 70]


class TestScreenBrightnessPrimitive:
    """Tests for the screen_brightness_control adapter"""

    def test_no_monitors_reports_missing_device(self):
        primitive = ScreenBrightnessPrimitive()
        with patch.object(ScreenBrightnessPrimitive, "list_monitors", return_value=[]):
            with patch("screen_brightness_control.set_brightness") as set_brightness:
                assert primitive.set_brightness(50) == (False, NO_DEVICE_MESSAGE)
                set_brightness.assert_not_called()

    def test_sets_every_monitor_with_preferred_method(self):
        primitive = ScreenBrightnessPrimitive()
        monitors = [
            MonitorHandle(name="Built-in", display_index=0, method_name="WMI"),
            MonitorHandle(name="External", display_index=1, method_name="VCP"),
        ]
        with patch.object(ScreenBrightnessPrimitive, "list_monitors", return_value=monitors):
            with patch("screen_brightness_control.set_brightness") as set_brightness:
                assert primitive.set_brightness(120) == (True, None)

        assert [c.kwargs for c in set_brightness.call_args_list] == [
            {"display": 0, "method": "wmi"},
            {"display": 1, "method": "vcp"},
        ]
        assert all(c.args == (100,) for c in set_brightness.call_args_list)

    def test_reports_error_when_every_call_fails(self):
        primitive = ScreenBrightnessPrimitive()
        monitors = [MonitorHandle(name="Built-in", display_index=0, method_name=None)]
        with patch.object(ScreenBrightnessPrimitive, "list_monitors", return_value=monitors):
            with patch(
                "screen_brightness_control.set_brightness",
                side_effect=RuntimeError("access denied"),
            ):
                assert primitive.set_brightness(50) == (False, "Built-in: access denied")

    @pytest.mark.parametrize("raw, expected", [
        ({"index": 2, "name": "Dell", "method": "VCP"}, MonitorHandle("Dell", 2, "VCP")),
        ({"name": "", "method": None}, MonitorHandle("Display 4", 3, None)),
    ])
    def test_from_raw_monitor(self, raw, expected):
        assert ScreenBrightnessPrimitive._from_raw_monitor(raw, 3) == expected
