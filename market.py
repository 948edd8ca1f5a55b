from dataclasses import dataclass
from datetime import date
import math
import re
import httpx
import logging

from config import MARKET_API_URL, HTTP_TIMEOUT, get_market_api_key

logger = logging.getLogger(__name__)


@dataclass
class MarketPrice:
    crop_id: str
    crop_name: str
    price: float
    unit: str  # kg | quintal | tonne
    location: str
    date: date
    trend: str  # up | down | stable


def mock_prices(today: date | None = None) -> list[MarketPrice]:
    today = today or date.today()
    return [
        MarketPrice("rice", "Rice", 25, "kg", "Delhi", today, "up"),
        MarketPrice("wheat", "Wheat", 22, "kg", "Punjab", today, "stable"),
        MarketPrice("cotton", "Cotton", 80, "kg", "Gujarat", today, "down"),
    ]


def _num(value) -> float:
    try:
        x = float(value)
    except (TypeError, ValueError):
        return float("nan")
    return x if math.isfinite(x) else float("nan")


def parse_arrival_date(value) -> date | None:
    """Parse the dd/mm/yyyy (or dd.mm.yyyy) arrival date used by the mandi feed."""
    if not isinstance(value, str):
        return None
    parts = re.split(r"[/.]", value.strip())
    if len(parts) != 3:
        return None
    try:
        dd, mm, yyyy = (int(p) for p in parts)
        return date(yyyy, mm, dd)
    except ValueError:
        return None


def price_trend(modal: float, lo: float, hi: float) -> str:
    mid = (lo + hi) / 2
    if modal > mid:
        return "up"
    if modal < mid:
        return "down"
    return "stable"


def record_to_price(r: dict) -> MarketPrice:
    commodity = r.get("commodity") or "Unknown"
    location = ", ".join(p for p in (r.get("market"), r.get("district"), r.get("state")) if p)
    modal, lo, hi = _num(r.get("modal_price")), _num(r.get("min_price")), _num(r.get("max_price"))

    if modal > 0:
        price = modal
    elif not math.isnan(lo) and not math.isnan(hi):
        price = round((lo + hi) / 2, 2)
    else:
        price = 0.0

    # Missing bounds collapse onto the price itself, i.e. "stable"
    lo = price if math.isnan(lo) else lo
    hi = price if math.isnan(hi) else hi

    return MarketPrice(
        crop_id=re.sub(r"\s+", "-", commodity.lower()),
        crop_name=commodity,
        price=price,
        unit="quintal",
        location=location or "N/A",
        date=parse_arrival_date(r.get("arrival_date")) or date.today(),
        trend=price_trend(price, lo, hi),
    )


def fetch_market_prices(limit: int = 100, state: str | None = None, commodity: str | None = None) -> list[MarketPrice]:
    params = {
        "api-key": get_market_api_key(),
        "format": "json",
        "limit": limit,
    }
    if state and state != "all":
        params["filters[state]"] = state
    if commodity:
        params["filters[commodity]"] = commodity

    try:
        r = httpx.get(MARKET_API_URL, params=params, timeout=HTTP_TIMEOUT)
        r.raise_for_status()
        records = r.json().get("records")
    except httpx.HTTPStatusError as e:
        logger.error(f"Market API returned error {e.response.status_code} (state={state}, commodity={commodity})")
        return mock_prices()
    except httpx.RequestError as e:
        logger.error(f"Network error when fetching market prices: {e}")
        return mock_prices()
    except (ValueError, AttributeError) as e:
        logger.error(f"Market API returned an unreadable payload: {e}")
        return mock_prices()

    if not isinstance(records, list) or not records:
        logger.warning(f"No market records for state={state}, commodity={commodity}; using fallback prices")
        return mock_prices()

    prices = [record_to_price(rec) for rec in records]
    logger.info(f"Fetched {len(prices)} market prices")
    return prices
