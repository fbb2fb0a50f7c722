"""Running 30-day cost projections."""

from datetime import date

from ..models import DailyObservation, NormalizedPoint, Projection, ProjectionPoint, TariffConfig
from ..tariffs import calculate_cost

PROJECTION_DAYS = 30


def _day_costs(points: list[NormalizedPoint], tariff: TariffConfig) -> list[tuple[date, float, int]]:
    """(day, cost, elapsed days) for each step between adjacent points."""
    steps = []
    for prev, curr in zip(points, points[1:]):
        days = (curr.day - prev.day).days
        steps.append((curr.day, calculate_cost(curr.value - prev.value, days, tariff), days))
    return steps


def naive_projection(points: list[NormalizedPoint], tariff: TariffConfig) -> tuple[ProjectionPoint, ...]:
    """Average daily cost so far, scaled to 30 days."""
    series = []
    total_cost = 0.0
    total_days = 0
    for day, cost, days in _day_costs(points, tariff):
        total_cost += cost
        total_days += days
        series.append(ProjectionPoint(day, total_cost / total_days * PROJECTION_DAYS))
    return tuple(series)


def smart_projection(
    points: list[NormalizedPoint], tariff: TariffConfig, anomaly_flags: list[bool]
) -> tuple[ProjectionPoint, ...]:
    """Like the naive projection, but only counting non-anomalous days.

    Until the first normal day is seen the naive value is used.
    """
    naive = naive_projection(points, tariff)
    series = []
    normal_cost = 0.0
    normal_days = 0
    for (day, cost, days), flagged, fallback in zip(_day_costs(points, tariff), anomaly_flags, naive):
        if not flagged:
            normal_cost += cost
            normal_days += days
        if normal_days > 0:
            series.append(ProjectionPoint(day, normal_cost / normal_days * PROJECTION_DAYS))
        else:
            series.append(fallback)
    return tuple(series)


def project(
    points: list[NormalizedPoint], tariff: TariffConfig, anomaly_flags: list[bool]
) -> Projection:
    """Naive and anomaly-excluding projections over the given window.

    ``anomaly_flags[i]`` marks the day ending at ``points[i + 1]``.
    """
    if len(points) >= 2 and len(anomaly_flags) != len(points) - 1:
        raise ValueError(
            f"Expected {len(points) - 1} anomaly flags for {len(points)} points, got {len(anomaly_flags)}"
        )

    return Projection(
        naive=naive_projection(points, tariff),
        smart=smart_projection(points, tariff, anomaly_flags),
    )


def cumulative_costs(observations: list[DailyObservation]) -> list[tuple[date, float]]:
    """Running total of cost by day."""
    series = []
    running = 0.0
    for obs in observations:
        running += obs.cost
        series.append((obs.day, running))
    return series
