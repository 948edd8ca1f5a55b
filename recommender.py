from dataclasses import dataclass, field
from datetime import date, timedelta
import logging
import math

from config import (
    SCORE_WEIGHTS, ACCEPTANCE_THRESHOLD, GOOD_PRICE_PER_KG, HIGH_YIELD_KG,
    KHARIF_SOWING_LEAD_DAYS, DEFAULT_SOWING_LEAD_DAYS,
)
from crops import CROPS, Crop, Season, WaterRequirement
from soil import SoilSample
from weather import WeatherSnapshot
from validation import validate_inputs, parse_season

logger = logging.getLogger(__name__)


@dataclass
class Recommendation:
    crop: Crop
    score: float
    reasons: list[str] = field(default_factory=list)
    sowing_date: date | None = None
    harvest_date: date | None = None
    expected_yield: int = 0
    # Gross revenue (yield x price x area); no input costs are subtracted.
    estimated_profit: float = 0.0


def season_from_month(m: int) -> Season:
    if m in [6,7,8,9,10]: return Season.KHARIF
    if m in [11,12,1,2,3]: return Season.RABI
    return Season.ZAID


# Missing or non-numeric fields never earn credit; NaN already compares False.
def _gt(value, threshold) -> bool:
    try:
        return value > threshold
    except TypeError:
        return False


def _lt(value, threshold) -> bool:
    try:
        return value < threshold
    except TypeError:
        return False


def _within(value, lo, hi) -> bool:
    try:
        return lo <= value <= hi
    except TypeError:
        return False


def _average_temperature(weather: WeatherSnapshot) -> float:
    try:
        return (weather.temperature + weather.forecast[0].temp_max) / 2
    except (IndexError, TypeError, AttributeError):
        return float("nan")


def _water_fits(crop: Crop, rainfall) -> bool:
    # Low-water crops are also credited under heavy rain (rainfall between 50 and 100
    # credits both medium and low, anything under 100 credits low).
    if crop.water_requirement == WaterRequirement.HIGH and _gt(rainfall, 100):
        return True
    if crop.water_requirement == WaterRequirement.MEDIUM and _gt(rainfall, 50):
        return True
    if crop.water_requirement == WaterRequirement.LOW and _lt(rainfall, 100):
        return True
    return False


def score_crop(crop: Crop, soil: SoilSample, weather: WeatherSnapshot, season) -> float:
    """
    Additive suitability score in [0, 1].

    Each factor is an independent check worth a fixed weight: soil type,
    temperature, season, water need against rainfall, and market price.
    """
    credits = []
    if crop.suits_soil(soil.type):
        credits.append(SCORE_WEIGHTS["soil"])
    if crop.tolerates(_average_temperature(weather)):
        credits.append(SCORE_WEIGHTS["temperature"])
    if crop.season == season or crop.season == Season.ALL:
        credits.append(SCORE_WEIGHTS["season"])
    if _water_fits(crop, weather.rainfall):
        credits.append(SCORE_WEIGHTS["water"])
    if crop.market_price > GOOD_PRICE_PER_KG:
        credits.append(SCORE_WEIGHTS["price"])
    return math.fsum(credits)


def sowing_date(crop: Crop, today: date | None = None) -> date:
    today = today or date.today()
    lead = KHARIF_SOWING_LEAD_DAYS if crop.season == Season.KHARIF else DEFAULT_SOWING_LEAD_DAYS
    return today + timedelta(days=lead)


def expected_yield(crop: Crop, soil: SoilSample, weather: WeatherSnapshot) -> int:
    multiplier = 1.0
    if _gt(soil.organic_matter, 2):
        multiplier *= 1.2
    if _within(soil.ph, 6, 7.5):
        multiplier *= 1.1
    if crop.tolerates(weather.temperature):
        multiplier *= 1.1
    # round half up
    return int(math.floor(crop.yield_kg * multiplier + 0.5))


def recommendation_reasons(crop: Crop, soil: SoilSample, weather: WeatherSnapshot) -> list[str]:
    reasons = []
    if crop.suits_soil(soil.type):
        soil_name = getattr(soil.type, "value", soil.type)
        reasons.append(f"Suitable for {soil_name} soil")
    if crop.market_price > GOOD_PRICE_PER_KG:
        reasons.append("Good market price")
    if crop.water_requirement == WaterRequirement.LOW and _lt(weather.rainfall, 100):
        reasons.append("Low water requirement matches rainfall")
    if crop.yield_kg > HIGH_YIELD_KG:
        reasons.append("High yield potential")
    return reasons


def recommend_crops(location, soil: SoilSample, weather: WeatherSnapshot, farm_size: float, season,
                    *, crops=None, today: date | None = None, strict: bool = False) -> list[Recommendation]:
    """
    Score every crop and return those above the acceptance threshold,
    best first. Equal scores keep catalog order.

    With strict=True the inputs are validated first and a ValidationError
    is raised instead of silently skipping credit.
    """
    if strict:
        validate_inputs(soil, weather, farm_size, season)
        season = parse_season(season)
    crops = CROPS if crops is None else crops
    today = today or date.today()

    recommendations = []
    for crop in crops:
        score = score_crop(crop, soil, weather, season)
        if score <= ACCEPTANCE_THRESHOLD:
            logger.debug(f"{crop.id} scored {score:.2f}, below threshold")
            continue
        sow = sowing_date(crop, today)
        yld = expected_yield(crop, soil, weather)
        recommendations.append(Recommendation(
            crop=crop,
            score=score,
            reasons=recommendation_reasons(crop, soil, weather),
            sowing_date=sow,
            harvest_date=sow + timedelta(days=crop.duration),
            expected_yield=yld,
            estimated_profit=yld * crop.market_price * farm_size,
        ))

    recommendations.sort(key=lambda r: r.score, reverse=True)
    logger.info(f"{len(recommendations)} of {len(crops)} crops recommended for {location}")
    return recommendations
