"""Detection of atypical daily gas consumption.

A day is anomalous when either:
1. its usage rate is an IQR outlier (1.5 x IQR, both sides), or
2. its daily cost is an IQR spike (2.0 x IQR, upper side only), or
3. it deviates sharply from the last week AND is out of line with the
   temperature (heavy use on a warm day, or very little on a cold one).

Signal 3 is only evaluated when neither 1 nor 2 fired.
"""

import statistics
from dataclasses import dataclass

from ..models import DailyObservation

RATE_IQR_MULTIPLIER = 1.5
COST_IQR_MULTIPLIER = 2.0  # more lenient on cost spikes

TRAILING_WINDOW = 7  # days, including the current one
MIN_TRAILING_PRIOR = 4
DEVIATION_SIGMAS = 2.5

MIN_CONTEXT_OBSERVATIONS = 10
TEMP_DELTA = 5.0  # °C either side of the mean temperature
WARM_RATE_FACTOR = 1.8  # x median rate
COLD_RATE_FACTOR = 0.3


@dataclass(frozen=True)
class AnomalyReason:
    """Which signals fired for one day."""

    rate_outlier: bool = False
    cost_outlier: bool = False
    recent_deviation: bool = False
    temperature_anomaly: bool = False

    @property
    def is_anomaly(self) -> bool:
        return (self.rate_outlier or self.cost_outlier) or (
            self.recent_deviation and self.temperature_anomaly
        )


def quartiles(values: list[float]) -> tuple[float, float]:
    """First and third quartile (inclusive method)."""
    if len(values) < 2:
        value = values[0] if values else 0.0
        return value, value
    q1, _, q3 = statistics.quantiles(values, n=4, method="inclusive")
    return q1, q3


def _iqr_bounds(values: list[float], multiplier: float) -> tuple[float, float]:
    q1, q3 = quartiles(values)
    iqr = q3 - q1
    return q1 - multiplier * iqr, q3 + multiplier * iqr


def explain_anomalies(observations: list[DailyObservation]) -> list[AnomalyReason]:
    """Evaluate every anomaly signal for each observation, in order."""
    if not observations:
        return []

    rates = [o.rate for o in observations]
    daily_costs = [o.daily_cost for o in observations]

    rate_low, rate_high = _iqr_bounds(rates, RATE_IQR_MULTIPLIER)
    _, cost_high = _iqr_bounds(daily_costs, COST_IQR_MULTIPLIER)

    median_rate = statistics.median(rates)
    temps = [o.temperature for o in observations if o.temperature is not None]
    avg_temp = statistics.fmean(temps) if len(temps) >= MIN_CONTEXT_OBSERVATIONS else None
    has_context = len(observations) >= MIN_CONTEXT_OBSERVATIONS and avg_temp is not None

    reasons = []
    window: list[float] = []
    for obs, rate in zip(observations, rates):
        window.append(rate)
        if len(window) > TRAILING_WINDOW:
            window.pop(0)

        rate_outlier = rate < rate_low or rate > rate_high
        cost_outlier = obs.daily_cost > cost_high
        if rate_outlier or cost_outlier:
            reasons.append(AnomalyReason(rate_outlier=rate_outlier, cost_outlier=cost_outlier))
            continue

        prior = window[:-1]
        recent_deviation = False
        if len(prior) >= MIN_TRAILING_PRIOR:
            mean = statistics.fmean(prior)
            std = statistics.pstdev(prior, mean)
            recent_deviation = abs(rate - mean) > DEVIATION_SIGMAS * std

        temperature_anomaly = False
        if has_context and obs.temperature is not None:
            warm_and_heavy = (
                obs.temperature > avg_temp + TEMP_DELTA and rate > WARM_RATE_FACTOR * median_rate
            )
            cold_and_light = (
                obs.temperature < avg_temp - TEMP_DELTA and rate < COLD_RATE_FACTOR * median_rate
            )
            temperature_anomaly = warm_and_heavy or cold_and_light

        reasons.append(
            AnomalyReason(recent_deviation=recent_deviation, temperature_anomaly=temperature_anomaly)
        )

    return reasons


def detect_anomalies(observations: list[DailyObservation]) -> list[bool]:
    """Flag each observation as anomalous or not."""
    return [reason.is_anomaly for reason in explain_anomalies(observations)]
