import json
from datetime import date, datetime, timedelta

import pytest

from gasmeter.analysis.summary import (
    analysis_to_dict,
    analyze,
    format_analysis_text,
    heating_efficiency,
    range_summary,
    reading_deltas,
    select_window,
)
from gasmeter.models import DailyObservation, MeterSnapshot, Reading, TariffConfig, TemperatureStore
from gasmeter.tariffs import calculate_cost

TARIFF = TariffConfig()
START = date(2024, 1, 1)
TODAY = date(2024, 2, 15)


@pytest.fixture
def snapshot():
    """40 days of midnight readings whose usage falls as it gets warmer."""
    temps = {START + timedelta(days=i): 2.0 + (i % 10) for i in range(41)}
    readings = [Reading("r0", datetime(2024, 1, 1), 1000.0)]
    for i in range(1, 41):
        day = START + timedelta(days=i)
        usage = 5.0 - 0.3 * temps[day]
        readings.append(Reading(f"r{i}", datetime.combine(day, datetime.min.time()), readings[-1].value + usage))

    upcoming = {TODAY + timedelta(days=i): 4.0 for i in range(1, 8)}
    store = TemperatureStore.from_caches(temps, upcoming, TODAY)
    return MeterSnapshot(readings=tuple(reversed(readings)), tariff=TARIFF, temperatures=store)


def test_reading_deltas():
    """Each reading shows usage and cost since the previous one."""
    readings = [
        Reading("b", datetime(2024, 1, 3), 12.0),
        Reading("a", datetime(2024, 1, 1), 10.0),
        Reading("c", datetime(2024, 1, 4), 11.0),
    ]

    deltas = reading_deltas(readings, TARIFF)

    assert [d.reading.id for d in deltas] == ["a", "b", "c"]
    assert deltas[0].usage is None and deltas[0].cost is None
    assert deltas[1].usage == 2.0
    assert deltas[1].days == 2.0
    assert deltas[1].cost == pytest.approx(calculate_cost(2.0, 2.0, TARIFF))
    # Meter went backwards
    assert deltas[2].usage == -1.0
    assert deltas[2].cost == 0


def test_range_summary():
    first = Reading("a", datetime(2024, 1, 31), 130.0)
    second = Reading("b", datetime(2024, 1, 1), 100.0)

    summary = range_summary(first, second, TARIFF)

    assert summary.start.id == "b"
    assert summary.days == 30
    assert summary.usage == 30
    assert summary.cost == pytest.approx(calculate_cost(30, 30, TARIFF))
    assert summary.monthly_projection == pytest.approx(summary.cost)
    assert summary.breakdown.total == pytest.approx(summary.cost)


def test_range_summary_same_instant():
    reading = Reading("a", datetime(2024, 1, 1), 100.0)

    assert range_summary(reading, reading, TARIFF) is None


def test_select_window():
    readings = [Reading(str(i), datetime(2024, 1, 1 + i), float(i)) for i in range(6)]

    window = select_window(readings, "4", "1")

    assert [r.id for r in window] == ["1", "2", "3", "4"]
    with pytest.raises(ValueError, match="No reading with id 9"):
        select_window(readings, "1", "9")


def test_heating_efficiency():
    observations = [
        DailyObservation(day=START, usage=2.0, cost=0, daily_cost=0, temperature=5.5),
        DailyObservation(day=START, usage=2.0, cost=0, daily_cost=0, temperature=15.2),
        DailyObservation(day=START, usage=2.0, cost=0, daily_cost=0),
    ]

    points = heating_efficiency(observations)

    assert len(points) == 1
    assert points[0].usage_per_degree_day == pytest.approx(0.2)


def test_analyze(snapshot):
    """The whole pipeline runs on a snapshot."""
    analysis = analyze(snapshot)

    assert len(analysis.points) == 41
    assert len(analysis.observations) == 40
    assert len(analysis.anomaly_flags) == 40
    assert analysis.model.slope == pytest.approx(-0.3)
    assert analysis.model.intercept == pytest.approx(5.0)
    assert len(analysis.projection.naive) == 40
    assert analysis.forecast.available
    assert len(analysis.forecast.days) == 7
    assert analysis.forecast.total_predicted_usage == pytest.approx(7 * (5.0 - 0.3 * 4.0))
    assert analysis.forecast.confidence == "High"
    assert analysis.range.days == 40


def test_analyze_window(snapshot):
    """A window narrows the projection but not the temperature model."""
    analysis = analyze(snapshot, ("r10", "r20"))

    assert len(analysis.points) == 11
    assert len(analysis.projection.naive) == 10
    assert analysis.model.sample_count == 40
    assert analysis.range.start.id == "r10"


def test_analyze_without_readings():
    analysis = analyze(MeterSnapshot(readings=(), tariff=TARIFF))

    assert analysis.points == ()
    assert analysis.model is None
    assert not analysis.forecast.available
    assert analysis.range is None
    assert format_analysis_text(analysis).startswith("Not enough readings")


def test_analysis_output(snapshot):
    analysis = analyze(snapshot)

    data = json.loads(json.dumps(analysis_to_dict(analysis)))
    text = format_analysis_text(analysis)

    assert data["period"]["days"] == 40
    assert data["forecast"]["days"] == 7
    assert len(data["daily_breakdown"]) == 40
    assert "Excluding anomalies" in text
    assert "Confidence: High" in text


def test_analysis_output_rounds_temperatures():
    """Daily temperatures are reported to one decimal place, missing ones as null."""
    readings = (
        Reading("a", datetime(2024, 1, 1), 100.0),
        Reading("b", datetime(2024, 1, 2), 102.0),
        Reading("c", datetime(2024, 1, 3), 104.5),
    )
    store = TemperatureStore.from_caches({date(2024, 1, 2): 6.6666667}, {}, TODAY)

    data = analysis_to_dict(analyze(MeterSnapshot(readings=readings, tariff=TARIFF, temperatures=store)))

    assert [day["temperature_c"] for day in data["daily_breakdown"]] == [6.7, None]
