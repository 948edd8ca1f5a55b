from datetime import date

import httpx
import pytest

from conftest import json_response
from market import fetch_market_prices, parse_arrival_date, price_trend, record_to_price

RECORD = {
    "state": "Punjab",
    "district": "Ludhiana",
    "market": "Khanna",
    "commodity": "Paddy(Dhan) Common",
    "arrival_date": "14/10/2025",
    "min_price": "2300",
    "max_price": "2400",
    "modal_price": "2380",
}


def test_record_to_price():
    p = record_to_price(RECORD)
    assert p.crop_id == "paddy(dhan)-common"
    assert p.crop_name == "Paddy(Dhan) Common"
    assert p.price == 2380
    assert p.unit == "quintal"
    assert p.location == "Khanna, Ludhiana, Punjab"
    assert p.date == date(2025, 10, 14)
    assert p.trend == "up"


def test_record_without_modal_uses_midpoint():
    p = record_to_price({**RECORD, "modal_price": "", "market": None})
    assert p.price == 2350
    assert p.trend == "stable"
    assert p.location == "Ludhiana, Punjab"


def test_record_with_nothing_usable():
    p = record_to_price({})
    assert p.crop_name == "Unknown"
    assert p.price == 0
    assert p.location == "N/A"
    assert p.trend == "stable"


@pytest.mark.parametrize("value,expected", [
    ("01/02/2025", date(2025, 2, 1)),
    ("01.02.2025", date(2025, 2, 1)),
    ("2025-02-01", None),
    ("31/02/2025", None),
    (None, None),
])
def test_parse_arrival_date(value, expected):
    assert parse_arrival_date(value) == expected


def test_price_trend():
    assert price_trend(110, 90, 100) == "up"
    assert price_trend(80, 90, 100) == "down"
    assert price_trend(95, 90, 100) == "stable"


def test_fetch_market_prices_filters(monkeypatch):
    seen = {}

    def fake_get(url, params=None, **kw):
        seen.update(params)
        return json_response({"records": [RECORD]}, url=url)

    monkeypatch.setattr(httpx, "get", fake_get)
    prices = fetch_market_prices(50, state="Punjab", commodity="Paddy")
    assert len(prices) == 1
    assert seen["limit"] == 50
    assert seen["filters[state]"] == "Punjab"
    assert seen["filters[commodity]"] == "Paddy"


def test_fetch_market_prices_ignores_all_states(monkeypatch):
    seen = {}

    def fake_get(url, params=None, **kw):
        seen.update(params)
        return json_response({"records": [RECORD]}, url=url)

    monkeypatch.setattr(httpx, "get", fake_get)
    fetch_market_prices(state="all")
    assert "filters[state]" not in seen


def test_fetch_market_prices_fallback_on_empty(monkeypatch):
    monkeypatch.setattr(httpx, "get", lambda url, **kw: json_response({"records": []}, url=url))
    prices = fetch_market_prices()
    assert [p.crop_id for p in prices] == ["rice", "wheat", "cotton"]
    assert prices[0].unit == "kg"


def test_fetch_market_prices_fallback_offline(offline):
    assert [p.trend for p in fetch_market_prices()] == ["up", "stable", "down"]
