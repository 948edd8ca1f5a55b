from dataclasses import dataclass
from enum import Enum


class Season(str, Enum):
    KHARIF = "kharif"
    RABI = "rabi"
    ZAID = "zaid"
    ALL = "all"


class SoilType(str, Enum):
    CLAY = "clay"
    SANDY = "sandy"
    LOAMY = "loamy"
    SILTY = "silty"


class WaterRequirement(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Crop:
    id: str
    name: str
    local_name: str
    season: Season
    duration: int  # days
    water_requirement: WaterRequirement
    soil_types: tuple[SoilType, ...]
    temp_min: float
    temp_max: float
    yield_kg: float  # kg per acre
    market_price: float  # INR per kg

    def suits_soil(self, soil_type) -> bool:
        return soil_type in self.soil_types

    def tolerates(self, temperature) -> bool:
        # NaN compares False on both sides
        try:
            return self.temp_min <= temperature <= self.temp_max
        except TypeError:
            return False


CROPS: tuple[Crop, ...] = (
    Crop("rice", "Rice", "चावल", Season.KHARIF, 120, WaterRequirement.HIGH,
         (SoilType.CLAY, SoilType.LOAMY), 20, 35, 3000, 25),
    Crop("wheat", "Wheat", "गेहूं", Season.RABI, 150, WaterRequirement.MEDIUM,
         (SoilType.LOAMY, SoilType.SANDY), 15, 25, 4000, 22),
    Crop("sugarcane", "Sugarcane", "गन्ना", Season.ALL, 365, WaterRequirement.HIGH,
         (SoilType.CLAY, SoilType.LOAMY), 25, 35, 80000, 3.5),
    Crop("cotton", "Cotton", "कपास", Season.KHARIF, 180, WaterRequirement.MEDIUM,
         (SoilType.SANDY, SoilType.LOAMY), 20, 30, 500, 80),
    Crop("maize", "Maize", "मक्का", Season.KHARIF, 90, WaterRequirement.MEDIUM,
         (SoilType.LOAMY, SoilType.SANDY), 18, 30, 2500, 20),
)


def all_crops() -> list[Crop]:
    return list(CROPS)


def get_crop(crop_id: str) -> Crop | None:
    for c in CROPS:
        if c.id == crop_id:
            return c
    return None
