"""Compose the full analysis of a meter snapshot and summarise it."""

from dataclasses import dataclass
from datetime import datetime

from ..models import (
    DailyObservation,
    EfficiencyPoint,
    ForecastResult,
    MeterSnapshot,
    NormalizedPoint,
    Projection,
    RangeSummary,
    Reading,
    ReadingDelta,
    RegressionModel,
    TariffConfig,
)
from ..tariffs import calculate_cost, cost_breakdown
from . import anomalies, forecast, projection, regression
from .normalize import daily_observations, elapsed_days, normalize, sort_readings

HDD_BASE_TEMPERATURE = 15.5  # °C, standard heating base
MIN_DEGREE_DAYS = 0.5


@dataclass(frozen=True)
class Analysis:
    """Everything derived from one snapshot."""

    readings: tuple[Reading, ...]
    points: tuple[NormalizedPoint, ...]
    observations: tuple[DailyObservation, ...]
    anomaly_flags: tuple[bool, ...]
    model: RegressionModel | None
    projection: Projection
    forecast: ForecastResult
    range: RangeSummary | None


def reading_deltas(readings: list[Reading], tariff: TariffConfig) -> list[ReadingDelta]:
    """Usage and cost since the previous reading, for each raw reading."""
    ordered = sort_readings(readings)
    deltas = []
    for i, reading in enumerate(ordered):
        if i == 0:
            deltas.append(ReadingDelta(reading=reading))
            continue
        prev = ordered[i - 1]
        usage = reading.value - prev.value
        days = elapsed_days(prev.timestamp, reading.timestamp)
        deltas.append(
            ReadingDelta(reading=reading, usage=usage, days=days, cost=calculate_cost(usage, days, tariff))
        )
    return deltas


def range_summary(first: Reading, second: Reading, tariff: TariffConfig) -> RangeSummary | None:
    """Consumption between two readings, in either order.

    Returns None if both readings share a timestamp.
    """
    start, end = (first, second) if first.timestamp <= second.timestamp else (second, first)
    days = elapsed_days(start.timestamp, end.timestamp)
    if days == 0:
        return None

    usage = end.value - start.value
    cost = calculate_cost(usage, days, tariff)
    return RangeSummary(
        start=start,
        end=end,
        days=days,
        usage=usage,
        cost=cost,
        monthly_projection=cost / days * projection.PROJECTION_DAYS,
        breakdown=cost_breakdown(usage, days, tariff),
    )


def select_window(readings: list[Reading], start_id: str, end_id: str) -> list[Reading]:
    """Readings between two selected readings, inclusive."""
    by_id = {r.id: r for r in readings}
    if start_id not in by_id or end_id not in by_id:
        missing = start_id if start_id not in by_id else end_id
        raise ValueError(f"No reading with id {missing}")

    a, b = by_id[start_id].timestamp, by_id[end_id].timestamp
    lower, upper = min(a, b), max(a, b)
    return [r for r in sort_readings(readings) if lower <= r.timestamp <= upper]


def heating_efficiency(
    observations: list[DailyObservation], base_temperature: float = HDD_BASE_TEMPERATURE
) -> list[EfficiencyPoint]:
    """Usage per heating degree-day, for days cold enough to need heating."""
    points = []
    for obs in observations:
        if obs.temperature is None:
            continue
        degree_days = base_temperature - obs.temperature
        if degree_days > MIN_DEGREE_DAYS:
            points.append(EfficiencyPoint(day=obs.day, usage_per_degree_day=obs.usage / degree_days))
    return points


def analyze(snapshot: MeterSnapshot, window: tuple[str, str] | None = None) -> Analysis:
    """Run the whole pipeline on a snapshot.

    The regression is fitted on the full history; anomalies and projections
    use the selected window (or the full history when none is given).
    """
    tariff = snapshot.tariff
    observed = snapshot.temperatures.observed()
    readings = sort_readings(list(snapshot.readings))

    history = daily_observations(normalize(readings), tariff, observed)
    model = regression.fit(history)

    selected = select_window(readings, *window) if window else readings
    points = normalize(selected)
    observations = daily_observations(points, tariff, observed)
    flags = anomalies.detect_anomalies(observations)

    range_result = None
    if len(selected) >= 2:
        range_result = range_summary(selected[0], selected[-1], tariff)

    return Analysis(
        readings=tuple(selected),
        points=tuple(points),
        observations=tuple(observations),
        anomaly_flags=tuple(flags),
        model=model,
        projection=projection.project(points, tariff, flags),
        forecast=forecast.forecast(model, snapshot.temperatures.forecast(), tariff),
        range=range_result,
    )


def analysis_to_dict(analysis: Analysis) -> dict:
    """Plain, JSON-serialisable view of an analysis."""
    summary = analysis.range
    model = analysis.model
    result = analysis.forecast
    naive = analysis.projection.naive
    smart = analysis.projection.smart

    return {
        "period": {
            "start": summary.start.timestamp.isoformat() if summary else None,
            "end": summary.end.timestamp.isoformat() if summary else None,
            "days": round(summary.days, 2) if summary else 0,
        },
        "totals": {
            "usage_m3": round(summary.usage, 3) if summary else 0,
            "cost": round(summary.cost, 2) if summary else 0,
            "monthly_projection": round(summary.monthly_projection, 2) if summary else 0,
        },
        "breakdown": {
            "variable": round(summary.breakdown.variable, 2),
            "fixed": round(summary.breakdown.fixed, 2),
            "tax": round(summary.breakdown.tax, 2),
            "vat": round(summary.breakdown.vat, 2),
            "total_tax": round(summary.breakdown.total_tax, 2),
        }
        if summary
        else None,
        "projection": {
            "naive": round(naive[-1].projected_monthly_cost, 2) if naive else None,
            "smart": round(smart[-1].projected_monthly_cost, 2) if smart else None,
            "anomalous_days": [
                obs.day.isoformat() for obs, flagged in zip(analysis.observations, analysis.anomaly_flags) if flagged
            ],
        },
        "daily_breakdown": [
            {
                "date": obs.day.isoformat(),
                "usage_m3": round(obs.usage, 3),
                "cost": round(obs.cost, 2),
                "temperature_c": round(obs.temperature, 1) if obs.temperature is not None else None,
                "anomaly": flagged,
            }
            for obs, flagged in zip(analysis.observations, analysis.anomaly_flags)
        ],
        "regression": {
            "slope": round(model.slope, 4),
            "intercept": round(model.intercept, 4),
            "r_squared": round(model.r_squared, 3) if model.r_squared is not None else None,
            "samples": model.sample_count,
        }
        if model
        else None,
        "forecast": {
            "average_temperature_c": round(result.average_temperature, 1),
            "usage_m3": round(result.total_predicted_usage, 3),
            "cost": round(result.projected_cost, 2),
            "confidence": result.confidence,
            "days": len(result.days),
        }
        if result.available
        else None,
    }


def format_analysis_text(analysis: Analysis) -> str:
    """Format an analysis as human-readable text."""
    data = analysis_to_dict(analysis)
    if not analysis.range:
        return "Not enough readings to analyse (need at least 2)"

    start = datetime.fromisoformat(data["period"]["start"]).strftime("%Y-%m-%d %H:%M")
    end = datetime.fromisoformat(data["period"]["end"]).strftime("%Y-%m-%d %H:%M")
    lines = [
        f"Gas Summary: {start} to {end}",
        f"({data['period']['days']} days)",
        "",
        "Totals:",
        f"  - Usage: {data['totals']['usage_m3']} m³",
        f"  - Cost: €{data['totals']['cost']:.2f}",
        f"  - 30-day projection: €{data['totals']['monthly_projection']:.2f}",
        "",
        "Breakdown:",
        f"  - Gas: €{data['breakdown']['variable']:.2f}",
        f"  - Fixed charges: €{data['breakdown']['fixed']:.2f}",
        f"  - Taxes: €{data['breakdown']['total_tax']:.2f}",
    ]

    if data["projection"]["naive"] is not None:
        lines.extend([
            "",
            "Projection (30 days):",
            f"  - All days: €{data['projection']['naive']:.2f}",
            f"  - Excluding anomalies: €{data['projection']['smart']:.2f}",
            f"  - Anomalous days: {len(data['projection']['anomalous_days'])}",
        ])

    if data["regression"]:
        r_squared = data["regression"]["r_squared"]
        lines.extend([
            "",
            "Temperature model:",
            f"  - Usage = {data['regression']['slope']} × temp + {data['regression']['intercept']}",
            f"  - R²: {r_squared if r_squared is not None else 'n/a'} ({data['regression']['samples']} days)",
        ])

    if data["forecast"]:
        lines.extend([
            "",
            f"Forecast (next {data['forecast']['days']} days):",
            f"  - Average temperature: {data['forecast']['average_temperature_c']}°C",
            f"  - Predicted usage: {data['forecast']['usage_m3']} m³",
            f"  - Projected cost: €{data['forecast']['cost']:.2f}",
            f"  - Confidence: {data['forecast']['confidence']}",
        ])

    return "\n".join(lines)
