"""Tests for the Open-Meteo collector."""

from datetime import date
from unittest.mock import MagicMock, patch

import httpx
import pytest

from gasmeter.collectors import open_meteo


def daily_response(days, temps):
    response = MagicMock()
    response.json.return_value = {"daily": {"time": days, "temperature_2m_mean": temps}}
    return response


@pytest.fixture
def mock_get():
    with patch("httpx.get") as mock:
        yield mock


def test_parse_daily_means():
    """Missing values are skipped."""
    data = {"daily": {"time": ["2024-01-01", "2024-01-02"], "temperature_2m_mean": [4.2, None]}}

    assert open_meteo.parse_daily_means(data) == {date(2024, 1, 1): 4.2}


def test_fetch_temperatures(mock_get):
    """Observed and forecast days end up in one store split at today."""
    mock_get.side_effect = [
        daily_response(["2024-03-09", "2024-03-10"], [6.0, 7.0]),
        daily_response(["2024-03-10", "2024-03-11", "2024-03-12"], [8.0, 9.0, 10.0]),
    ]

    store = open_meteo.fetch_temperatures(40.4, -3.7, days=2, today=date(2024, 3, 10))

    assert store.observed() == {date(2024, 3, 9): 6.0, date(2024, 3, 10): 7.0}
    assert store.forecast() == {date(2024, 3, 11): 9.0, date(2024, 3, 12): 10.0}

    archive_params = mock_get.call_args_list[0].kwargs["params"]
    assert archive_params["start_date"] == "2024-03-08"
    assert archive_params["daily"] == "temperature_2m_mean"
    assert mock_get.call_args_list[1].kwargs["params"]["forecast_days"] == open_meteo.FORECAST_DAYS


def test_network_error(mock_get):
    mock_get.side_effect = httpx.ConnectError("Network down")

    with pytest.raises(open_meteo.WeatherError, match="Network down"):
        open_meteo.fetch_forecast(40.4, -3.7)


def test_geocode_postcode(mock_get):
    response = MagicMock()
    response.json.return_value = {"places": [{"latitude": "40.4165", "longitude": "-3.7026"}]}
    mock_get.return_value = response

    assert open_meteo.geocode_postcode("28001", "es") == (40.4165, -3.7026)
    assert mock_get.call_args.args[0] == "https://api.zippopotam.us/es/28001"


def test_geocode_unknown_postcode(mock_get):
    response = MagicMock()
    response.json.return_value = {}
    mock_get.return_value = response

    with pytest.raises(open_meteo.WeatherError, match="Invalid postcode"):
        open_meteo.geocode_postcode("00000", "es")


def test_get_location(monkeypatch):
    monkeypatch.setenv("GASMETER_LATITUDE", "40.5")
    monkeypatch.setenv("GASMETER_LONGITUDE", "-3.5")

    assert open_meteo.get_location() == (40.5, -3.5)


def test_get_location_unset(monkeypatch):
    monkeypatch.delenv("GASMETER_LATITUDE", raising=False)
    monkeypatch.delenv("GASMETER_LONGITUDE", raising=False)

    assert open_meteo.get_location() is None
