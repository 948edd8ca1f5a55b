from datetime import date

import httpx
import pytest

from conftest import json_response
from weather import (
    WeatherServiceError, _get, condition_from_wmo, fetch_weather,
    forecast_frame, mock_weather, snapshot_from_payload,
)

PAYLOAD = {
    "current": {
        "temperature_2m": 31.4,
        "relative_humidity_2m": 58,
        "precipitation": 0.2,
        "wind_speed_10m": 9.5,
        "surface_pressure": 1002.1,
    },
    "daily": {
        "time": ["2025-07-01", "2025-07-02", "2025-07-03"],
        "temperature_2m_max": [35.2, 33.0, None],
        "temperature_2m_min": [27.1, 26.4, None],
        "precipitation_sum": [0.0, 62.5, None],
        "relative_humidity_2m_mean": [55, None, None],
        "weather_code": [1, 63, None],
    },
}


def test_snapshot_from_payload():
    snap = snapshot_from_payload(PAYLOAD)
    assert snap.temperature == 31.4
    assert snap.rainfall == 0.2
    assert snap.pressure == 1002.1
    # the day without temperatures is dropped
    assert [f.date for f in snap.forecast] == [date(2025, 7, 1), date(2025, 7, 2)]
    assert snap.forecast[0].condition == "sunny"
    assert snap.forecast[1].condition == "rainy"
    assert snap.forecast[1].rainfall == 62.5
    # missing daily humidity falls back to the current reading
    assert snap.forecast[1].humidity == 58


def test_fetch_weather_uses_open_meteo(monkeypatch):
    seen = {}

    def fake_get(url, params=None, **kw):
        seen.update(params)
        return json_response(PAYLOAD, url=url)

    monkeypatch.setattr(httpx, "get", fake_get)
    snap = fetch_weather(30.9, 75.8)
    assert snap.temperature == 31.4
    assert seen["latitude"] == 30.9
    assert seen["timezone"] == "Asia/Kolkata"
    assert "temperature_2m" in seen["current"]


def test_fetch_weather_falls_back_to_mock(offline):
    snap = fetch_weather(30.9, 75.8)
    assert snap.temperature == 28
    assert snap.rainfall == 15
    assert len(snap.forecast) == 7


def test_fetch_weather_falls_back_on_bad_payload(monkeypatch):
    monkeypatch.setattr(httpx, "get", lambda url, **kw: json_response({"daily": {}}, url=url))
    assert fetch_weather(30.9, 75.8).pressure == 1013


def test_get_raises_service_error(monkeypatch):
    monkeypatch.setattr(httpx, "get", lambda url, **kw: json_response({}, status_code=502, url=url))
    with pytest.raises(WeatherServiceError, match="502"):
        _get({}, 30.9, 75.8)
    assert fetch_weather(30.9, 75.8).temperature == 28


@pytest.mark.parametrize("code,condition", [
    (0, "sunny"), (1, "sunny"), (3, "cloudy"), (45, "cloudy"), (61, "rainy"),
    (81, "rainy"), (75, "cloudy"), (95, "stormy"), (None, "cloudy"),
])
def test_condition_from_wmo(code, condition):
    assert condition_from_wmo(code) == condition


def test_mock_weather_ranges():
    snap = mock_weather(today=date(2025, 1, 1), seed=7)
    assert snap.forecast[0].date == date(2025, 1, 1)
    assert snap.forecast[-1].date == date(2025, 1, 7)
    for day in snap.forecast:
        assert 20 <= day.temp_min <= 30
        assert 30 <= day.temp_max <= 40
        assert 0 <= day.rainfall <= 20
    assert mock_weather(today=date(2025, 1, 1), seed=7) == snap


def test_forecast_frame_empty():
    snap = mock_weather()
    snap.forecast = []
    assert forecast_frame(snap).empty
