"""Usage and cost forecasts from weather forecasts."""

import logging
from datetime import date

from ..models import ForecastDay, ForecastResult, RegressionModel, TariffConfig
from ..tariffs import calculate_cost
from .regression import classify_confidence

logger = logging.getLogger(__name__)

MAX_FORECAST_DAYS = 16  # Open-Meteo forecast horizon


def forecast(
    model: RegressionModel | None,
    forecast_temperatures: dict[date, float],
    tariff: TariffConfig,
) -> ForecastResult:
    """Predict usage and cost for the upcoming forecast days.

    Returns ForecastResult.empty() when there is no model or no forecast.
    Predicted usage is clamped at zero.
    """
    if model is None or not forecast_temperatures:
        return ForecastResult.empty()

    horizon = sorted(forecast_temperatures.items())[:MAX_FORECAST_DAYS]
    days = tuple(
        ForecastDay(day=day, predicted_usage=max(0.0, model.predict(temp)), temperature=temp)
        for day, temp in horizon
    )

    total_usage = sum(d.predicted_usage for d in days)
    average_temp = sum(d.temperature for d in days) / len(days)
    logger.debug("Forecast %d days, %.3f m³ predicted", len(days), total_usage)

    return ForecastResult(
        average_temperature=average_temp,
        total_predicted_usage=total_usage,
        projected_cost=calculate_cost(total_usage, len(days), tariff),
        confidence=classify_confidence(model.r_squared, model.sample_count),
        days=days,
    )
