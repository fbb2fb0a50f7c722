"""Open-Meteo weather data collector.

Fetches mean daily outside temperature from the Open-Meteo Archive API
(observed days) and Forecast API (upcoming days), for correlation with
gas consumption.
"""

import logging
import os
from datetime import date, timedelta
from pathlib import Path

import httpx
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from ..db import save_temperatures
from ..models import TemperatureStore

logger = logging.getLogger(__name__)

ARCHIVE_URL = "https://archive-api.open-meteo.com/v1/archive"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
GEOCODE_URL = "https://api.zippopotam.us/{country}/{postcode}"

DEFAULT_COUNTRY = "es"
HISTORY_DAYS = 60
FORECAST_DAYS = 16


class WeatherError(Exception):
    """Base exception for weather collector errors."""
    pass


def get_location() -> tuple[float, float] | None:
    """Latitude/longitude from GASMETER_LATITUDE and GASMETER_LONGITUDE, if set."""
    lat = os.environ.get("GASMETER_LATITUDE")
    lon = os.environ.get("GASMETER_LONGITUDE")
    if lat and lon:
        return float(lat), float(lon)
    return None


def geocode_postcode(postcode: str, country: str | None = None) -> tuple[float, float]:
    """Look up the coordinates of a postcode via zippopotam.us."""
    country = country or os.environ.get("GASMETER_COUNTRY", DEFAULT_COUNTRY)
    url = GEOCODE_URL.format(country=country, postcode=postcode)
    try:
        response = httpx.get(url, timeout=30.0)
        response.raise_for_status()
        places = response.json().get("places", [])
    except httpx.HTTPError as e:
        raise WeatherError(f"Could not geocode postcode {postcode}: {e}")

    if not places:
        raise WeatherError(f"Invalid postcode: {postcode}")
    return float(places[0]["latitude"]), float(places[0]["longitude"])


def parse_daily_means(data: dict) -> dict[date, float]:
    """Date-keyed mean temperatures from an Open-Meteo daily response."""
    daily = data.get("daily", {})
    times = daily.get("time", [])
    temps = daily.get("temperature_2m_mean", [])

    return {
        date.fromisoformat(day): float(temp)
        for day, temp in zip(times, temps)
        if temp is not None  # Skip missing values
    }


def _get_daily(url: str, params: dict) -> dict[date, float]:
    try:
        response = httpx.get(url, params=params, timeout=30.0)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise WeatherError(f"Open-Meteo request failed: {e}")
    return parse_daily_means(response.json())


def fetch_observed(
    latitude: float, longitude: float, days: int = HISTORY_DAYS, today: date | None = None
) -> dict[date, float]:
    """Fetch mean daily temperatures for the last ``days`` days."""
    today = today or date.today()
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "start_date": (today - timedelta(days=days)).isoformat(),
        "end_date": today.isoformat(),
        "daily": "temperature_2m_mean",
        "timezone": "auto",
    }
    return _get_daily(ARCHIVE_URL, params)


def fetch_forecast(latitude: float, longitude: float, days: int = FORECAST_DAYS) -> dict[date, float]:
    """Fetch forecast mean daily temperatures."""
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "daily": "temperature_2m_mean",
        "forecast_days": days,
        "timezone": "auto",
    }
    return _get_daily(FORECAST_URL, params)


def fetch_temperatures(
    latitude: float, longitude: float, days: int = HISTORY_DAYS, today: date | None = None
) -> TemperatureStore:
    """Fetch observed and forecast temperatures into one store."""
    today = today or date.today()
    observed = fetch_observed(latitude, longitude, days, today)
    upcoming = fetch_forecast(latitude, longitude)
    logger.info("Fetched %d observed and %d forecast days", len(observed), len(upcoming))
    return TemperatureStore.from_caches(observed, upcoming, today)


def import_weather_data(
    latitude: float, longitude: float, days: int = HISTORY_DAYS, db_path: Path | None = None
) -> dict:
    """Fetch temperatures from Open-Meteo and cache them in the database.

    Returns dict with 'observed' and 'forecast' counts.
    """
    store = fetch_temperatures(latitude, longitude, days)
    save_temperatures(store.samples, fetched_on=store.today, db_path=db_path)
    return {"observed": len(store.observed()), "forecast": len(store.forecast())}
