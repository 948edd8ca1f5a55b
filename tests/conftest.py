from datetime import date, timedelta

import httpx
import pytest

from soil import default_soil
from weather import ForecastDay, WeatherSnapshot

TODAY = date(2025, 7, 1)


def forecast_days(n=7, temp_max=32, rainfall=5.0, start=TODAY):
    return [
        ForecastDay(start + timedelta(days=i), 22, temp_max, 60, rainfall, "sunny")
        for i in range(n)
    ]


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def soil():
    return default_soil()


@pytest.fixture
def weather():
    # Dashboard defaults: 28 C now, 32 C forecast max, 15 mm rain
    return WeatherSnapshot(
        temperature=28, humidity=65, rainfall=15, wind_speed=12, pressure=1013,
        forecast=forecast_days(),
    )


@pytest.fixture
def location():
    return {"state": "Delhi", "district": "New Delhi", "lat": 28.6139, "lon": 77.2090}


def json_response(payload, status_code=200, url="https://example.test"):
    return httpx.Response(status_code, json=payload, request=httpx.Request("GET", url))


@pytest.fixture
def offline(monkeypatch):
    """Make every outbound httpx call fail with a connection error."""
    def fail(url, *args, **kwargs):
        raise httpx.ConnectError("offline", request=httpx.Request("GET", url))
    monkeypatch.setattr(httpx, "get", fail)
    monkeypatch.setattr(httpx, "post", fail)
