from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable

from .brightness_service import BrightnessApplier
from .config_store import ConfigStore
from .location import LocationResolver
from .models import (
    SOURCE_MANUAL,
    SOURCE_MANUAL_NO_LOCATION,
    SOURCE_MANUAL_NO_SUN_TIMES,
    CycleStatus,
    LocationResult,
    Settings,
    SunTimes,
    clamp_interval,
)
from .notifications import LogNotifier, Notifier
from .schedule import evaluate
from .sun_times import SunTimesProvider, local_timezone


LOCATION_REQUIRED_MESSAGE = (
    "Location is required to calculate sunrise and sunset. Please enter a city."
)
SUN_TIMES_UNAVAILABLE_MESSAGE = (
    "Unable to get sunrise/sunset from the server. Manual schedule will be used."
)

Clock = Callable[[], datetime]
StatusListener = Callable[[CycleStatus], None]

logger = logging.getLogger(__name__)


def local_now() -> datetime:
    return datetime.now(local_timezone())


class BrightnessEngine:
    """Owns the scheduling state and runs at most one evaluation cycle at a time.

    A cycle resolves the location, fetches sun times, decides the day/night
    period and applies the matching brightness. Each step degrades to a
    fallback instead of failing: sun-based → manual schedule → no change.
    Cycles are triggered periodically by a background thread (:meth:`start`)
    or on demand (:meth:`apply_now`); a trigger that arrives while a cycle is
    in flight is dropped.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        config_store: ConfigStore | None = None,
        resolver: LocationResolver | None = None,
        sun_provider: SunTimesProvider | None = None,
        applier: BrightnessApplier | None = None,
        notifier: Notifier | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config_store = config_store
        if settings is None:
            settings = config_store.load() if config_store is not None else Settings()
        self.settings = settings

        self.resolver = resolver or LocationResolver(on_persist=self._persist_location)
        self._owns_sun_provider = sun_provider is None
        self.sun_provider = sun_provider or SunTimesProvider.for_source(settings.sun_times_source)
        self.applier = applier or BrightnessApplier()
        self.notifier = notifier or LogNotifier()
        self.clock = clock or local_now

        self._cycle_lock = threading.Lock()
        self._settings_lock = threading.Lock()
        self._status_lock = threading.Lock()
        self._last_status: CycleStatus | None = None
        self._listeners: list[StatusListener] = []

        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    @property
    def last_status(self) -> CycleStatus | None:
        with self._status_lock:
            return self._last_status

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def add_listener(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    def start(self, apply_immediately: bool = True) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            args=(apply_immediately,),
            name="brightness-scheduler",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
        self._thread = None

    def apply_now(self) -> threading.Thread:
        worker = threading.Thread(
            target=self.run_cycle,
            kwargs={"show_messages": True},
            name="brightness-apply-now",
            daemon=True,
        )
        worker.start()
        return worker

    def update_settings(self, settings: Settings) -> threading.Thread:
        with self._settings_lock:
            source_changed = settings.sun_times_source != self.settings.sun_times_source
            self.settings = settings
            if source_changed and self._owns_sun_provider:
                self.sun_provider = SunTimesProvider.for_source(settings.sun_times_source)
            self._persist_settings(settings)
        self.applier.reset()
        return self.apply_now()

    def run_cycle(self, show_messages: bool = False) -> CycleStatus:
        if not self._cycle_lock.acquire(blocking=False):
            logger.debug("Schedule update already in progress, skipping trigger")
            return CycleStatus(state="skipped")

        try:
            try:
                status = self._evaluate(show_messages)
            except Exception:
                logger.exception("Unexpected error while updating brightness schedule")
                status = CycleStatus(state="error", evaluated_at=self.clock())
            self._publish(status)
        finally:
            self._cycle_lock.release()
        return status

    def _evaluate(self, show_messages: bool) -> CycleStatus:
        with self._settings_lock:
            settings = self.settings
            sun_provider = self.sun_provider

        if not settings.enabled:
            logger.debug("Automatic brightness is disabled")
            return CycleStatus(state="disabled")

        now = self.clock()
        warnings: list[str] = []
        location: LocationResult | None = None
        sun_times: SunTimes | None = None
        manual_source = SOURCE_MANUAL

        if settings.use_sun_schedule:
            location = self.resolver.resolve(settings)
            if location is None:
                manual_source = SOURCE_MANUAL_NO_LOCATION
                warnings.append(LOCATION_REQUIRED_MESSAGE)
            else:
                sun_times = sun_provider.get_sun_times(
                    location.latitude, location.longitude, now.date()
                )
                if sun_times is None:
                    manual_source = SOURCE_MANUAL_NO_SUN_TIMES
                    warnings.append(SUN_TIMES_UNAVAILABLE_MESSAGE)

        decision = evaluate(now, settings, sun_times, manual_source)
        target = settings.target_brightness(decision.is_day)
        result = self.applier.apply(target)
        if not result.ok:
            warnings.append(f"Failed to set brightness. {result.reason}")

        if show_messages:
            for message in warnings:
                self.notifier.warn(message)
        elif warnings:
            logger.info(f"Scheduled update finished with warnings: {'; '.join(warnings)}")

        status = CycleStatus(
            state="applied" if result.ok else "apply_failed",
            evaluated_at=now,
            decision=decision,
            target_brightness=target,
            location=location,
            warnings=tuple(warnings),
        )
        logger.info(status.text())
        return status

    def _publish(self, status: CycleStatus) -> None:
        with self._status_lock:
            self._last_status = status
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception:
                logger.exception("Status listener failed")

    def _persist_location(self, resolved: Settings) -> None:
        # Only the location cache fields of a possibly stale snapshot are written.
        with self._settings_lock:
            current = self.settings
            if current is not resolved:
                current.last_latitude = resolved.last_latitude
                current.last_longitude = resolved.last_longitude
                current.last_city = resolved.last_city
                current.last_country = resolved.last_country
            self._persist_settings(current)

    def _persist_settings(self, settings: Settings) -> None:
        if self.config_store is None:
            return
        try:
            self.config_store.save(settings)
        except OSError as e:
            logger.warning(f"Could not save settings to {self.config_store.config_path}: {e}")

    def _run_loop(self, apply_immediately: bool) -> None:
        if apply_immediately:
            self.run_cycle(show_messages=True)
        while not self._stop_event.wait(clamp_interval(self.settings.update_interval_seconds)):
            self.run_cycle()
