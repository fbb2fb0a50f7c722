"""Resample irregular meter readings onto a daily grid."""

import logging
from bisect import bisect_left
from datetime import date, datetime, time, timedelta

from ..models import DailyObservation, NormalizedPoint, Reading, TariffConfig, TemperatureStore
from ..tariffs import calculate_cost

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


def elapsed_days(start: datetime, end: datetime) -> float:
    """Fractional days between two instants."""
    return (end - start).total_seconds() / SECONDS_PER_DAY


def sort_readings(readings: list[Reading]) -> list[Reading]:
    """Readings in chronological order (ties keep their input order)."""
    return sorted(readings, key=lambda r: r.timestamp)


def normalize(readings: list[Reading]) -> list[NormalizedPoint]:
    """Interpolate a meter value for the start of every calendar day.

    Covers each day from the first reading's day to the last reading's day,
    inclusive. Days before the first reading take its value; everything else
    is linearly interpolated between the readings either side.
    """
    if len(readings) < 2:
        return []

    ordered = sort_readings(readings)
    timestamps = [r.timestamp for r in ordered]
    end = timestamps[-1]

    current = datetime.combine(timestamps[0].date(), time.min, tzinfo=timestamps[0].tzinfo)
    points = []
    while current <= end:
        # First reading at or after midnight
        next_idx = bisect_left(timestamps, current)
        if next_idx == 0:
            value = ordered[0].value
        else:
            prev = ordered[next_idx - 1]
            nxt = ordered[next_idx]
            span = (nxt.timestamp - prev.timestamp).total_seconds()
            factor = (current - prev.timestamp).total_seconds() / span if span else 0.0
            value = prev.value + factor * (nxt.value - prev.value)

        points.append(NormalizedPoint(day=current.date(), value=value))
        current += timedelta(days=1)

    logger.debug("Normalized %d readings into %d daily points", len(readings), len(points))
    return points


def daily_observations(
    points: list[NormalizedPoint],
    tariff: TariffConfig,
    temperatures: TemperatureStore | dict[date, float] | None = None,
) -> list[DailyObservation]:
    """Derive usage, cost and temperature for each day between adjacent points."""
    observations = []
    for prev, curr in zip(points, points[1:]):
        days = (curr.day - prev.day).days
        usage = curr.value - prev.value
        cost = calculate_cost(usage, days, tariff)
        temperature = temperatures.get(curr.day) if temperatures is not None else None
        observations.append(
            DailyObservation(
                day=curr.day,
                usage=usage,
                cost=cost,
                daily_cost=cost / days,
                temperature=temperature,
                elapsed_days=days,
            )
        )
    return observations
