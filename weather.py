from dataclasses import dataclass, field
from datetime import date, timedelta
import random
import httpx
import pandas as pd
import logging

from config import OPEN_METEO_URL, TIMEZONE, HTTP_TIMEOUT, DEFAULT_FORECAST_DAYS

logger = logging.getLogger(__name__)

CONDITIONS = ("sunny", "cloudy", "rainy", "stormy")

DAILY_VARS = [
    "temperature_2m_max", "temperature_2m_min", "precipitation_sum",
    "relative_humidity_2m_mean", "weather_code",
]
CURRENT_VARS = [
    "temperature_2m", "relative_humidity_2m", "precipitation",
    "wind_speed_10m", "surface_pressure",
]


class WeatherServiceError(Exception):
    pass


@dataclass
class ForecastDay:
    date: date
    temp_min: float
    temp_max: float
    humidity: float
    rainfall: float
    condition: str


@dataclass
class WeatherSnapshot:
    temperature: float
    humidity: float
    rainfall: float
    wind_speed: float
    pressure: float
    forecast: list[ForecastDay] = field(default_factory=list)


def condition_from_wmo(code) -> str:
    # WMO weather interpretation codes as used by Open-Meteo
    if code is None or pd.isna(code):
        return "cloudy"
    code = int(code)
    if code in (0, 1):
        return "sunny"
    if 51 <= code <= 67 or 80 <= code <= 82:
        return "rainy"
    if code >= 95:
        return "stormy"
    return "cloudy"


def _get(params: dict, lat: float, lon: float) -> dict:
    try:
        r = httpx.get(OPEN_METEO_URL, params=params, timeout=HTTP_TIMEOUT)
        r.raise_for_status()
        return r.json()
    except httpx.HTTPStatusError as e:
        logger.error(f"Weather API returned error {e.response.status_code} for lat={lat}, lon={lon}")
        raise WeatherServiceError(f"Weather service unavailable: {e.response.status_code}")
    except httpx.RequestError as e:
        logger.error(f"Network error when fetching weather data for lat={lat}, lon={lon}: {e}")
        raise WeatherServiceError(f"Failed to connect to weather service: {e}")


def _daily_frame(js: dict) -> pd.DataFrame:
    daily = pd.DataFrame(js["daily"])
    daily["date"] = pd.to_datetime(daily["time"]).dt.date
    return daily.drop(columns=["time"])


def snapshot_from_payload(js: dict) -> WeatherSnapshot:
    cur = js["current"]
    humidity = float(cur["relative_humidity_2m"])
    daily = _daily_frame(js).dropna(subset=["temperature_2m_min", "temperature_2m_max"])
    if "relative_humidity_2m_mean" not in daily:
        daily["relative_humidity_2m_mean"] = humidity
    daily = daily.fillna({"relative_humidity_2m_mean": humidity, "precipitation_sum": 0.0})
    forecast = [
        ForecastDay(
            date=row["date"],
            temp_min=float(row["temperature_2m_min"]),
            temp_max=float(row["temperature_2m_max"]),
            humidity=float(row["relative_humidity_2m_mean"]),
            rainfall=float(row["precipitation_sum"]),
            condition=condition_from_wmo(row.get("weather_code")),
        )
        for _, row in daily.iterrows()
    ]
    return WeatherSnapshot(
        temperature=float(cur["temperature_2m"]),
        humidity=humidity,
        rainfall=float(cur.get("precipitation") or 0.0),
        wind_speed=float(cur["wind_speed_10m"]),
        pressure=float(cur["surface_pressure"]),
        forecast=forecast,
    )


def fetch_weather(lat: float, lon: float, days: int = DEFAULT_FORECAST_DAYS, tz: str = TIMEZONE) -> WeatherSnapshot:
    """
    Current conditions plus a daily forecast from Open-Meteo.
    Falls back to mock_weather() when the service can't be reached or
    returns something we can't read.
    """
    params = {
        "latitude": lat,
        "longitude": lon,
        "current": ",".join(CURRENT_VARS),
        "daily": ",".join(DAILY_VARS),
        "forecast_days": days,
        "timezone": tz,
    }
    try:
        return snapshot_from_payload(_get(params, lat, lon))
    except WeatherServiceError:
        logger.warning(f"Using mock weather for lat={lat}, lon={lon}")
    except (KeyError, TypeError, ValueError) as e:
        logger.error(f"Unexpected weather payload for lat={lat}, lon={lon}: {e}")
    return mock_weather()


def mock_forecast(today: date | None = None, days: int = DEFAULT_FORECAST_DAYS, seed: int | None = None) -> list[ForecastDay]:
    rng = random.Random(seed)
    today = today or date.today()
    return [
        ForecastDay(
            date=today + timedelta(days=i),
            temp_min=20 + rng.random() * 10,
            temp_max=30 + rng.random() * 10,
            humidity=50 + rng.random() * 30,
            rainfall=rng.random() * 20,
            condition=rng.choice(CONDITIONS),
        )
        for i in range(days)
    ]


def mock_weather(today: date | None = None, seed: int | None = None) -> WeatherSnapshot:
    return WeatherSnapshot(
        temperature=28,
        humidity=65,
        rainfall=15,
        wind_speed=12,
        pressure=1013,
        forecast=mock_forecast(today, seed=seed),
    )


def forecast_frame(weather: WeatherSnapshot) -> pd.DataFrame:
    cols = ["date", "temp_min", "temp_max", "humidity", "rainfall", "condition"]
    return pd.DataFrame([f.__dict__ for f in weather.forecast], columns=cols)
