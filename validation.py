import math

from crops import Season, SoilType


class ValidationError(ValueError):
    """Raised by the strict scoring mode for inputs the permissive mode would silently skip."""


def _finite(x) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool) and math.isfinite(x)


def parse_season(value) -> Season:
    try:
        return Season(value)
    except ValueError:
        raise ValidationError(f"Unknown season: {value!r}") from None


def parse_soil_type(value) -> SoilType:
    try:
        return SoilType(value)
    except ValueError:
        raise ValidationError(f"Unknown soil type: {value!r}") from None


def validate_inputs(soil, weather, farm_size, season) -> None:
    parse_soil_type(soil.type)
    parse_season(season)
    if not _finite(farm_size) or farm_size <= 0:
        raise ValidationError(f"Farm size must be a positive number, got {farm_size!r}")
    if not weather.forecast:
        raise ValidationError("Weather forecast must contain at least one day")
    for name in ("temperature", "rainfall"):
        if not _finite(getattr(weather, name)):
            raise ValidationError(f"Weather {name} must be a finite number")
    if not _finite(weather.forecast[0].temp_max):
        raise ValidationError("Forecast maximum temperature must be a finite number")
    for name in ("ph", "organic_matter"):
        if not _finite(getattr(soil, name)):
            raise ValidationError(f"Soil {name} must be a finite number")
