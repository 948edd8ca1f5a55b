from dataclasses import dataclass, field
import httpx
import numpy as np
import logging

from config import SOILGRIDS_URL, HTTP_TIMEOUT
from crops import SoilType

logger = logging.getLogger(__name__)

# Van Bemmelen factor: organic matter ~= 1.724 x organic carbon
OM_PER_SOC = 1.724


@dataclass
class Nutrients:
    nitrogen: float  # ppm
    phosphorus: float
    potassium: float


@dataclass
class SoilSample:
    type: SoilType | str
    ph: float
    organic_matter: float  # %
    nutrients: Nutrients
    moisture: float  # %


@dataclass
class SoilHealthReport:
    overall_score: int
    status: str
    recommendations: list[str] = field(default_factory=list)
    improvements: list[str] = field(default_factory=list)


@dataclass
class Fertilizer:
    name: str
    amount: float
    unit: str
    timing: str


@dataclass
class FertilizerPlan:
    fertilizers: list[Fertilizer]
    total_cost: int
    schedule: list[tuple[str, str]]


APPLICATION_SCHEDULE = [
    ("15 days before sowing", "Apply organic manure and prepare soil"),
    ("At sowing", "Apply basal fertilizers (DAP, MOP)"),
    ("25-30 days after sowing", "First top dressing of urea"),
    ("45-50 days after sowing", "Second top dressing of urea"),
]

IMPROVEMENT_LEVELS = {
    "basic": (2000, "6-12 months", "10-15% improvement in soil health"),
    "moderate": (5000, "12-18 months", "25-30% improvement in soil health"),
    "comprehensive": (10000, "18-24 months", "40-50% improvement in soil health"),
}


def default_soil() -> SoilSample:
    """
    Soil sample used when no test results or API data are available.
    Typical loamy soil of the Indo-Gangetic plain.
    """
    return SoilSample(
        type=SoilType.LOAMY,
        ph=6.5,
        organic_matter=2.1,
        nutrients=Nutrients(nitrogen=45, phosphorus=25, potassium=180),
        moisture=65,
    )


def classify_texture(clay_pct: float, sand_pct: float, silt_pct: float) -> SoilType:
    if clay_pct >= 40:
        return SoilType.CLAY
    if sand_pct >= 70:
        return SoilType.SANDY
    if silt_pct >= 50 and clay_pct < 27:
        return SoilType.SILTY
    return SoilType.LOAMY


def fetch_soil(lat: float, lon: float) -> SoilSample:
    # ISRIC SoilGrids gives texture, pH and organic carbon but no plant-available NPK
    # or moisture; those stay at the default sample's values.
    params = {
        "lat": lat, "lon": lon,
        "property": ["clay", "sand", "silt", "phh2o", "soc"],
        "depth": ["0-5cm", "5-15cm", "15-30cm"],
        "value": "mean",
    }
    fallback = default_soil()
    try:
        r = httpx.get(SOILGRIDS_URL, params=params, timeout=HTTP_TIMEOUT)
        r.raise_for_status()
        data = r.json()
        props = {p["name"]: p for p in data["properties"]["layers"]}
    except httpx.HTTPStatusError as e:
        logger.error(f"Soil API returned error {e.response.status_code} for lat={lat}, lon={lon}")
        return fallback
    except httpx.RequestError as e:
        logger.error(f"Network error when fetching soil data for lat={lat}, lon={lon}: {e}")
        return fallback
    except (KeyError, TypeError, ValueError) as e:
        logger.error(f"Malformed soil data for lat={lat}, lon={lon}: {e}")
        return fallback

    def mean_prop(name):
        vs = [d["values"]["mean"] for d in props[name]["depths"]]
        vs = [v for v in vs if v is not None]
        return float(np.mean(vs)) if vs else float("nan")

    try:
        # SoilGrids units: texture g/kg, pH x10, SOC dg/kg
        clay = mean_prop("clay") / 10
        sand = mean_prop("sand") / 10
        silt = mean_prop("silt") / 10
        ph = mean_prop("phh2o") / 10
        soc_pct = mean_prop("soc") / 100
    except KeyError as e:
        logger.error(f"Soil layer {e} missing for lat={lat}, lon={lon}")
        return fallback

    if np.isnan([clay, sand, silt, ph, soc_pct]).any():
        logger.warning(f"No soil coverage at lat={lat}, lon={lon}; using defaults")
        return fallback

    return SoilSample(
        type=classify_texture(clay, sand, silt),
        ph=round(ph, 2),
        organic_matter=round(soc_pct * OM_PER_SOC, 2),
        nutrients=fallback.nutrients,
        moisture=fallback.moisture,
    )


def _nutrient_score(n: Nutrients) -> int:
    score = 0
    bands = (
        (n.nitrogen, (40, 60), (30, 70)),
        (n.phosphorus, (20, 40), (15, 50)),
        (n.potassium, (150, 250), (120, 300)),
    )
    for value, full, partial in bands:
        if full[0] <= value <= full[1]:
            score += 10
        elif partial[0] <= value <= partial[1]:
            score += 7
        else:
            score += 3
    return score


def analyze_soil_health(soil: SoilSample) -> SoilHealthReport:
    """
    Score soil health out of 100: pH 25, organic matter 25, NPK 30, moisture 20.
    Every sub-score that misses its full-credit band adds a recommendation
    and, where there is a clear fix, an improvement.
    """
    score = 0
    recommendations = []
    improvements = []

    if 6.0 <= soil.ph <= 7.5:
        score += 25
    elif 5.5 <= soil.ph <= 8.0:
        score += 15
        recommendations.append("pH level is acceptable but not optimal")
    else:
        score += 5
        recommendations.append("pH level needs adjustment")
        if soil.ph < 6.0:
            improvements.append("Add lime to increase pH")
        else:
            improvements.append("Add sulfur or organic matter to decrease pH")

    om = soil.organic_matter
    if om >= 3.0:
        score += 25
    elif om >= 2.0:
        score += 20
    elif om >= 1.0:
        score += 10
        recommendations.append("Organic matter content is low")
        improvements.append("Add compost, manure, or green manure")
    else:
        score += 5
        recommendations.append("Organic matter content is very low")
        improvements.append("Urgent: Add organic matter through composting")

    nutrient_score = _nutrient_score(soil.nutrients)
    score += nutrient_score
    if nutrient_score < 20:
        recommendations.append("Nutrient levels are inadequate")
        improvements.append("Apply balanced NPK fertilizer")

    if 50 <= soil.moisture <= 80:
        score += 20
    elif 40 <= soil.moisture <= 90:
        score += 15
        recommendations.append("Soil moisture needs attention")
    else:
        score += 5
        recommendations.append("Soil moisture is problematic")
        if soil.moisture < 40:
            improvements.append("Improve irrigation and water retention")
        else:
            improvements.append("Improve drainage to prevent waterlogging")

    if score >= 80:
        status = "excellent"
    elif score >= 60:
        status = "good"
    elif score >= 40:
        status = "fair"
    else:
        status = "poor"

    return SoilHealthReport(round(score), status, recommendations, improvements)


def fertilizer_plan(soil: SoilSample, farm_size: float) -> FertilizerPlan:
    n = soil.nutrients
    fertilizers = []
    total_cost = 0.0

    if n.nitrogen < 40:
        amount = max(0, (50 - n.nitrogen) * farm_size * 0.1)
        fertilizers.append(Fertilizer("Urea (46-0-0)", round(amount, 2), "kg",
                                      "Split application - 50% at sowing, 50% at flowering"))
        total_cost += amount * 15
    if n.phosphorus < 20:
        amount = max(0, (30 - n.phosphorus) * farm_size * 0.05)
        fertilizers.append(Fertilizer("DAP (18-46-0)", round(amount, 2), "kg",
                                      "Basal application at sowing"))
        total_cost += amount * 25
    if n.potassium < 150:
        amount = max(0, (200 - n.potassium) * farm_size * 0.02)
        fertilizers.append(Fertilizer("MOP (0-0-60)", round(amount, 2), "kg",
                                      "Basal application at sowing"))
        total_cost += amount * 20
    if soil.organic_matter < 2.0:
        amount = farm_size * 2  # tons per acre
        fertilizers.append(Fertilizer("Farm Yard Manure", round(amount, 2), "tons",
                                      "Apply 15-20 days before sowing"))
        total_cost += amount * 500

    return FertilizerPlan(fertilizers, round(total_cost), list(APPLICATION_SCHEDULE))


def soil_improvement_cost(farm_size: float, level: str) -> dict:
    if level not in IMPROVEMENT_LEVELS:
        raise ValueError(f"Unknown improvement level: {level}")
    per_acre, timeline, expected = IMPROVEMENT_LEVELS[level]
    return {
        "cost": round(farm_size * per_acre),
        "timeline": timeline,
        "expected_improvement": expected,
    }


@dataclass
class SoilLab:
    name: str
    location: str
    contact: str
    cost: int


@dataclass
class SoilTestingPlan:
    labs: list[SoilLab]
    parameters: list[str]
    frequency: str


@dataclass
class OrganicInput:
    name: str
    purpose: str
    application: str


@dataclass
class OrganicPlan:
    practices: list[str]
    inputs: list[OrganicInput]
    benefits: list[str]


TEST_PARAMETERS = [
    "pH Level",
    "Organic Matter Content",
    "Nitrogen (N)",
    "Phosphorus (P)",
    "Potassium (K)",
    "Micronutrients (Zn, Fe, Mn, Cu)",
    "Soil Texture",
    "Water Holding Capacity",
]

ORGANIC_PRACTICES = [
    "Crop rotation with legumes",
    "Green manuring",
    "Composting",
    "Vermicomposting",
    "Biofertilizer application",
    "Mulching",
    "Cover cropping",
]

ORGANIC_INPUTS = [
    OrganicInput("Vermicompost", "Improve soil structure and nutrient content", "5-10 tons per acre annually"),
    OrganicInput("Neem Cake", "Natural pest control and soil enrichment", "200-300 kg per acre"),
    OrganicInput("Rhizobium Culture", "Nitrogen fixation in legumes", "As per seed treatment"),
    OrganicInput("Farm Yard Manure", "Organic matter and nutrient supply", "10-15 tons per acre"),
]

ORGANIC_BENEFITS = [
    "Improved soil health and fertility",
    "Reduced input costs",
    "Better water retention",
    "Enhanced biodiversity",
    "Premium market prices",
    "Environmental sustainability",
]


def soil_testing_recommendations(location: dict) -> SoilTestingPlan:
    """Nearby soil testing options for a location with `state` and `district` keys."""
    state, district = location.get("state") or "", location.get("district") or ""
    labs = [
        SoilLab("Soil Testing Laboratory", f"Agricultural University, {state}", "+91-XXX-XXXXXXX", 500),
        SoilLab("Krishi Vigyan Kendra", f"{district}, {state}", "+91-XXX-XXXXXXX", 300),
        SoilLab("Private Soil Testing Lab", f"Near {district}", "+91-XXX-XXXXXXX", 800),
    ]
    return SoilTestingPlan(labs, list(TEST_PARAMETERS), "Test soil every 2-3 years or before major crop changes")


def organic_farming_recommendations() -> OrganicPlan:
    return OrganicPlan(list(ORGANIC_PRACTICES), list(ORGANIC_INPUTS), list(ORGANIC_BENEFITS))
