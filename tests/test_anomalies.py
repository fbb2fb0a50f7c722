from datetime import date, timedelta

from gasmeter.analysis.anomalies import detect_anomalies, explain_anomalies, quartiles
from gasmeter.models import DailyObservation, TariffConfig
from gasmeter.tariffs import calculate_cost

TARIFF = TariffConfig()


def observations(usages, temperatures=None):
    """Daily observations for consecutive days starting 2024-01-01."""
    temperatures = temperatures or [None] * len(usages)
    start = date(2024, 1, 1)
    result = []
    for i, (usage, temp) in enumerate(zip(usages, temperatures)):
        cost = calculate_cost(usage, 1, TARIFF)
        result.append(
            DailyObservation(
                day=start + timedelta(days=i), usage=usage, cost=cost, daily_cost=cost, temperature=temp
            )
        )
    return result


# Rates spread widely at first, then a steady week, then a collapse on a cold day
CONTEXT_USAGES = [0.5, 3.0, 0.6, 2.9, 0.7, 2.8, 1.0, 2.0, 2.05, 1.95, 2.0, 2.05, 1.95, 0.2]
CONTEXT_TEMPS = [10.0] * 13 + [0.0]


def test_usage_spike_is_flagged():
    """A day far above the interquartile range is anomalous."""
    usages = [1.0, 1.1, 0.9, 1.05, 0.95] * 4
    usages[12] = 5.0

    flags = detect_anomalies(observations(usages))

    assert flags[12] is True
    assert sum(flags) == 1


def test_regular_usage_has_no_anomalies():
    """Ordinary day-to-day variation is not flagged."""
    usages = [1.0, 1.1, 0.9, 1.05, 0.95] * 4

    assert detect_anomalies(observations(usages)) == [False] * 20


def test_flags_are_deterministic():
    """Same input, same flags."""
    usages = [1.0, 1.1, 0.9, 1.05, 0.95] * 4 + [4.0, 0.0, 1.0]
    obs = observations(usages)

    assert detect_anomalies(obs) == detect_anomalies(obs)


def test_cold_day_collapse_needs_temperature_context():
    """A sudden drop on a cold day is flagged through the contextual signals."""
    reasons = explain_anomalies(observations(CONTEXT_USAGES, CONTEXT_TEMPS))

    last = reasons[-1]
    assert not last.rate_outlier
    assert not last.cost_outlier
    assert last.recent_deviation
    assert last.temperature_anomaly
    assert last.is_anomaly
    assert [r.is_anomaly for r in reasons[:-1]] == [False] * 13


def test_recent_deviation_alone_is_not_enough():
    """Without temperatures the same drop is not anomalous."""
    reasons = explain_anomalies(observations(CONTEXT_USAGES))

    assert reasons[-1].recent_deviation
    assert not reasons[-1].temperature_anomaly
    assert not reasons[-1].is_anomaly


def test_cost_spike_alone_is_flagged():
    """Meter corrections price at zero, so a modest day can be a cost spike without a rate outlier."""
    usages = [-3.0, -3.0, -3.0, -3.0, 0.0, 0.0, 0.0, 1.5]

    reasons = explain_anomalies(observations(usages))

    assert not reasons[-1].rate_outlier
    assert reasons[-1].cost_outlier
    assert [r.is_anomaly for r in reasons] == [False] * 7 + [True]


def test_low_cost_day_is_not_a_cost_outlier():
    """Only expensive days count as cost outliers."""
    usages = [0.1, 0.3, 0.1, 0.3, 0.2, 0.3, 0.1, 0.3, -0.05]
    obs = observations(usages)
    q1, q3 = quartiles([o.daily_cost for o in obs])

    reasons = explain_anomalies(obs)

    assert obs[-1].daily_cost < q1 - 2.0 * (q3 - q1)
    assert not reasons[-1].rate_outlier
    assert not reasons[-1].cost_outlier
    assert detect_anomalies(obs) == [False] * 9


def test_warm_day_surge_is_flagged():
    """Heavy use on a warm day after a steady week is anomalous."""
    usages = CONTEXT_USAGES[:-1] + [3.8]
    temps = [10.0] * 13 + [20.0]

    reasons = explain_anomalies(observations(usages, temps))

    last = reasons[-1]
    assert not last.rate_outlier
    assert not last.cost_outlier
    assert last.recent_deviation
    assert last.temperature_anomaly
    assert [r.is_anomaly for r in reasons] == [False] * 13 + [True]


def test_temperature_context_needs_ten_days():
    """Nine days with a temperature are not enough to judge a warm-day surge."""
    usages = CONTEXT_USAGES[:-1] + [3.8]

    nine = explain_anomalies(observations(usages, [None] * 5 + [10.0] * 8 + [20.0]))
    ten = explain_anomalies(observations(usages, [None] * 4 + [10.0] * 9 + [20.0]))

    assert nine[-1].recent_deviation
    assert not nine[-1].temperature_anomaly
    assert not nine[-1].is_anomaly
    assert ten[-1].temperature_anomaly
    assert ten[-1].is_anomaly


def test_empty_window():
    assert detect_anomalies([]) == []


def test_quartiles_of_single_value():
    assert quartiles([2.0]) == (2.0, 2.0)
