from dataclasses import replace

from conftest import forecast_days
from alerts import weather_alerts, irrigation_advice, forecast_alerts


def test_no_alerts_on_mild_day(weather):
    assert weather_alerts(weather) == []
    assert forecast_alerts(weather) == []


def test_extreme_conditions(weather):
    storm = replace(weather, temperature=42, rainfall=70, wind_speed=35, humidity=90)
    assert weather_alerts(storm) == [
        "High temperature alert: Avoid field work during peak hours",
        "Heavy rainfall expected: Ensure proper drainage",
        "Strong winds expected: Secure farm equipment",
        "High humidity: Risk of fungal diseases",
    ]


def test_irrigation_advice(weather):
    hot_dry = replace(weather, temperature=34, rainfall=2, humidity=30)
    assert irrigation_advice(hot_dry) == [
        "Irrigation needed: Low rainfall and high temperature",
        "Increase irrigation frequency: Low humidity",
    ]
    wet = replace(weather, rainfall=45)
    assert irrigation_advice(wet) == ["Reduce irrigation: Sufficient rainfall received"]
    assert irrigation_advice(weather) == []


def test_forecast_alerts(weather):
    days = forecast_days(3)
    days[1].rainfall = 75
    days[2].temp_max = 39.5
    alerts = forecast_alerts(replace(weather, forecast=days))
    assert [(a.kind, a.date, a.severity) for a in alerts] == [
        ("heavy_rain", str(days[1].date), "high"),
        ("heat_stress", str(days[2].date), "medium"),
    ]
    assert "75 mm" in alerts[0].message
    assert "39.5" in alerts[1].message


def test_forecast_alerts_empty_forecast(weather):
    assert forecast_alerts(replace(weather, forecast=[])) == []
