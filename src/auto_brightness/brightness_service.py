from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Protocol

import screen_brightness_control as sbc

from .models import ApplyResult, clamp_brightness


NO_DEVICE_MESSAGE = "No compatible monitor was found."

logger = logging.getLogger(__name__)


class BrightnessPrimitive(Protocol):
    def set_brightness(self, percent: int) -> tuple[bool, str | None]: ...


@dataclass
class MonitorHandle:
    name: str
    display_index: int
    method_name: str | None


class ScreenBrightnessPrimitive:
    """Sets the brightness of every detected display through screen_brightness_control."""

    def list_monitors(self) -> list[MonitorHandle]:
        raw_monitors = sbc.list_monitors_info(allow_duplicates=False)
        parsed: list[MonitorHandle] = []
        for fallback_index, raw in enumerate(raw_monitors):
            parsed.append(self._from_raw_monitor(raw, fallback_index))
        return parsed

    def set_brightness(self, percent: int) -> tuple[bool, str | None]:
        target = clamp_brightness(percent)
        try:
            monitors = self.list_monitors()
        except Exception as e:
            return False, str(e) or NO_DEVICE_MESSAGE
        if not monitors:
            return False, NO_DEVICE_MESSAGE

        last_error: str | None = None
        applied = 0
        for monitor in monitors:
            for call_kwargs in self._build_call_args(monitor):
                try:
                    sbc.set_brightness(target, **call_kwargs)
                    applied += 1
                    break
                except Exception as e:
                    last_error = f"{monitor.name}: {str(e) or type(e).__name__}"
                    continue

        if applied == 0:
            return False, last_error or NO_DEVICE_MESSAGE
        return True, None

    @staticmethod
    def _from_raw_monitor(raw_monitor: dict[str, Any], fallback_index: int) -> MonitorHandle:
        display_index = raw_monitor.get("index", fallback_index)
        if not isinstance(display_index, int):
            display_index = fallback_index

        method_name: str | None = None
        raw_method = raw_monitor.get("method")
        if isinstance(raw_method, str):
            method_name = raw_method
        elif raw_method is not None:
            method_name = getattr(raw_method, "__name__", str(raw_method))

        name = str(raw_monitor.get("name") or "").strip() or f"Display {fallback_index + 1}"
        return MonitorHandle(name=name, display_index=display_index, method_name=method_name)

    @staticmethod
    def _build_call_args(monitor: MonitorHandle) -> list[dict[str, Any]]:
        call_args: list[dict[str, Any]] = []
        method = ScreenBrightnessPrimitive._normalize_method(monitor.method_name)
        if method:
            call_args.append({"display": monitor.display_index, "method": method})
        call_args.append({"display": monitor.display_index})
        return call_args

    @staticmethod
    def _normalize_method(method_name: str | None) -> str | None:
        if not method_name:
            return None
        lower_name = method_name.lower()
        if "wmi" in lower_name:
            return "wmi"
        if "vcp" in lower_name:
            return "vcp"
        return None


class BrightnessApplier:
    def __init__(self, primitive: BrightnessPrimitive | None = None) -> None:
        self.primitive = primitive or ScreenBrightnessPrimitive()
        self._lock = threading.Lock()
        self._last_applied: int | None = None

    @property
    def last_applied(self) -> int | None:
        with self._lock:
            return self._last_applied

    def apply(self, target_percent: int | float) -> ApplyResult:
        target = clamp_brightness(target_percent)
        with self._lock:
            if self._last_applied == target:
                return ApplyResult.applied()

            try:
                ok, error = self.primitive.set_brightness(target)
            except Exception as e:
                ok, error = False, str(e) or type(e).__name__

            if not ok:
                reason = error or "Unknown error."
                logger.warning(f"Failed to set brightness to {target}%: {reason}")
                return ApplyResult.failed(reason)

            self._last_applied = target
        logger.info(f"Brightness set to {target}%")
        return ApplyResult.applied()

    def reset(self) -> None:
        with self._lock:
            self._last_applied = None
