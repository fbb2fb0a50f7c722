"""Linear regression of daily gas usage against outside temperature."""

import logging

from ..models import (
    CONFIDENCE_HIGH,
    CONFIDENCE_LOW,
    CONFIDENCE_MEDIUM,
    DailyObservation,
    RegressionModel,
)

logger = logging.getLogger(__name__)

MIN_SAMPLES = 5

# Confidence thresholds: (min r², min sample count), both exclusive
HIGH_CONFIDENCE = (0.7, 20)
MEDIUM_CONFIDENCE = (0.4, 10)


def usage_temperature_pairs(observations: list[DailyObservation]) -> list[tuple[float, float]]:
    """(temperature, usage) for each day that has a temperature sample."""
    return [(o.temperature, o.usage) for o in observations if o.temperature is not None]


def fit(observations: list[DailyObservation]) -> RegressionModel | None:
    """Fit usage = slope * temperature + intercept by ordinary least squares.

    Returns None when there are fewer than MIN_SAMPLES days with a
    temperature, or when every such day has the same temperature.
    r_squared is None if usage never varies.
    """
    pairs = usage_temperature_pairs(observations)
    n = len(pairs)
    if n < MIN_SAMPLES:
        logger.debug("Not enough temperature days to fit a model (%d < %d)", n, MIN_SAMPLES)
        return None

    sum_x = sum(x for x, _ in pairs)
    sum_y = sum(y for _, y in pairs)
    sum_xy = sum(x * y for x, y in pairs)
    sum_x2 = sum(x * x for x, _ in pairs)

    denominator = n * sum_x2 - sum_x**2
    if denominator == 0:
        logger.debug("All %d samples share one temperature, no model", n)
        return None

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n

    mean_y = sum_y / n
    ss_tot = sum((y - mean_y) ** 2 for _, y in pairs)
    ss_res = sum((y - (slope * x + intercept)) ** 2 for x, y in pairs)
    r_squared = 1 - ss_res / ss_tot if ss_tot else None

    return RegressionModel(slope=slope, intercept=intercept, r_squared=r_squared, sample_count=n)


def classify_confidence(r_squared: float | None, sample_count: int) -> str:
    """Qualitative confidence in a model's predictions."""
    if r_squared is None:
        return CONFIDENCE_LOW
    if r_squared > HIGH_CONFIDENCE[0] and sample_count > HIGH_CONFIDENCE[1]:
        return CONFIDENCE_HIGH
    if r_squared > MEDIUM_CONFIDENCE[0] and sample_count > MEDIUM_CONFIDENCE[1]:
        return CONFIDENCE_MEDIUM
    return CONFIDENCE_LOW
