from __future__ import annotations

from datetime import datetime, time, timedelta

from .models import (
    SOURCE_MANUAL,
    SOURCE_SUN,
    ScheduleDecision,
    Settings,
    SunTimes,
)


def evaluate_sun(now: datetime, sunrise: datetime, sunset: datetime) -> ScheduleDecision:
    if sunrise <= now < sunset:
        return ScheduleDecision(is_day=True, next_change_at=sunset, source=SOURCE_SUN)

    next_change = sunrise
    if now >= sunset:
        next_change = sunrise + timedelta(days=1)
    return ScheduleDecision(is_day=False, next_change_at=next_change, source=SOURCE_SUN)


def evaluate_manual(
    now: datetime,
    day_start: time,
    night_start: time,
    source: str = SOURCE_MANUAL,
) -> ScheduleDecision:
    """Day/night period for fixed start times, reinterpreted on ``now``'s calendar date.

    When ``day_start >= night_start`` the day period wraps past midnight.
    Boundaries are half-open: a start instant belongs to the period it starts.
    """
    today_day = _on_date(now, day_start)
    today_night = _on_date(now, night_start)

    if day_start < night_start:
        if now < today_day:
            return ScheduleDecision(is_day=False, next_change_at=today_day, source=source)
        if now < today_night:
            return ScheduleDecision(is_day=True, next_change_at=today_night, source=source)
        return ScheduleDecision(
            is_day=False, next_change_at=_on_date(now, day_start, days=1), source=source
        )

    if now >= today_day:
        return ScheduleDecision(
            is_day=True, next_change_at=_on_date(now, night_start, days=1), source=source
        )
    if now < today_night:
        return ScheduleDecision(is_day=True, next_change_at=today_night, source=source)
    return ScheduleDecision(is_day=False, next_change_at=today_day, source=source)


def evaluate(
    now: datetime,
    settings: Settings,
    sun_times: SunTimes | None = None,
    manual_source: str = SOURCE_MANUAL,
) -> ScheduleDecision:
    if sun_times is not None:
        return evaluate_sun(now, _align(sun_times.sunrise, now), _align(sun_times.sunset, now))
    return evaluate_manual(now, settings.day_start_time, settings.night_start_time, manual_source)


def _on_date(now: datetime, value: time, days: int = 0) -> datetime:
    target_date = now.date() + timedelta(days=days)
    return datetime.combine(target_date, time(value.hour, value.minute), tzinfo=now.tzinfo)


def _align(instant: datetime, now: datetime) -> datetime:
    # Naive and aware datetimes cannot be compared.
    if now.tzinfo is None and instant.tzinfo is not None:
        return instant.astimezone().replace(tzinfo=None)
    if now.tzinfo is not None and instant.tzinfo is None:
        return instant.replace(tzinfo=now.tzinfo)
    return instant
