from dataclasses import dataclass
import logging

from weather import WeatherSnapshot, forecast_frame

logger = logging.getLogger(__name__)


@dataclass
class Alert:
    kind: str
    date: str
    message: str
    severity: str


def weather_alerts(weather: WeatherSnapshot) -> list[str]:
    alerts = []
    if weather.temperature > 40:
        alerts.append("High temperature alert: Avoid field work during peak hours")
    if weather.rainfall > 50:
        alerts.append("Heavy rainfall expected: Ensure proper drainage")
    if weather.wind_speed > 30:
        alerts.append("Strong winds expected: Secure farm equipment")
    if weather.humidity > 80:
        alerts.append("High humidity: Risk of fungal diseases")
    return alerts


def irrigation_advice(weather: WeatherSnapshot) -> list[str]:
    advice = []
    if weather.rainfall < 10 and weather.temperature > 30:
        advice.append("Irrigation needed: Low rainfall and high temperature")
    if weather.humidity < 40:
        advice.append("Increase irrigation frequency: Low humidity")
    if weather.rainfall > 30:
        advice.append("Reduce irrigation: Sufficient rainfall received")
    return advice


def forecast_alerts(weather: WeatherSnapshot) -> list[Alert]:
    daily = forecast_frame(weather)
    alerts = []
    if daily.empty:
        return alerts

    # Heavy rain
    heavy = daily[daily["rainfall"] >= 50]
    for _, r in heavy.iterrows():
        alerts.append(Alert(
            kind="heavy_rain",
            date=str(r["date"]),
            message=f"Heavy rain {r['rainfall']:.0f} mm expected. Protect seedlings, delay spraying.",
            severity="high"
        ))

    # Heat stress (generic; tune per crop)
    heat = daily[daily["temp_max"] >= 38]
    for _, r in heat.iterrows():
        alerts.append(Alert(
            kind="heat_stress",
            date=str(r["date"]),
            message=f"Heat stress day (Tmax {r['temp_max']:.1f}°C). Mulch/irrigate to reduce canopy stress.",
            severity="medium"
        ))

    logger.debug(f"{len(alerts)} forecast alerts over {len(daily)} days")
    return alerts
