from fastapi import FastAPI, Query, HTTPException, UploadFile, File, Form, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import List, Optional, Literal
from dataclasses import asdict
from datetime import date
import logging

from config import DEFAULT_LOCATION, DEFAULT_FARM_SIZE
from crops import Crop, Season, SoilType, WaterRequirement, all_crops, get_crop
from soil import (
    SoilSample, Nutrients, analyze_soil_health, fertilizer_plan, soil_improvement_cost,
    default_soil, fetch_soil, soil_testing_recommendations, organic_farming_recommendations,
)
from weather import WeatherSnapshot, ForecastDay, fetch_weather
from alerts import weather_alerts, irrigation_advice, forecast_alerts
from market import fetch_market_prices
from detection import DetectionHistory, detect
from advisory import build_advisory_prompt, get_crop_advisory
from recommender import recommend_crops, season_from_month, Recommendation
from validation import ValidationError

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Smart Crop Advisory (India)")

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allows all origins - for development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.detection_history = DetectionHistory()


@app.get("/")
def root():
    return {"message": "Smart Crop Advisory API", "endpoints": [
        "/crops", "/recommendations", "/soil/health", "/soil/fertilizer",
        "/soil/improvement-cost", "/soil/testing", "/soil/organic", "/advisory",
        "/weather", "/alerts", "/market/prices", "/detect", "/detect/history",
    ]}


@app.get("/health")
def health_check():
    return {"status": "healthy", "features": ["recommendations", "soil", "weather", "market", "detection", "advisory"]}


class NutrientsIn(BaseModel):
    nitrogen: float
    phosphorus: float
    potassium: float


class SoilIn(BaseModel):
    type: SoilType
    ph: float = Field(ge=0, le=14)
    organic_matter: float
    nutrients: NutrientsIn
    moisture: float


class ForecastIn(BaseModel):
    date: date
    temp_min: float
    temp_max: float
    humidity: float
    rainfall: float
    condition: Literal["sunny", "cloudy", "rainy", "stormy"] = "cloudy"


class WeatherIn(BaseModel):
    temperature: float
    humidity: float
    rainfall: float
    wind_speed: float = 0
    pressure: float = 1013
    forecast: List[ForecastIn] = Field(min_length=1)


class LocationIn(BaseModel):
    state: str = DEFAULT_LOCATION["state"]
    district: str = DEFAULT_LOCATION["district"]
    village: str = DEFAULT_LOCATION["village"]
    lat: float = DEFAULT_LOCATION["lat"]
    lon: float = DEFAULT_LOCATION["lon"]


class RecommendationIn(BaseModel):
    location: LocationIn = Field(default_factory=LocationIn)
    soil: Optional[SoilIn] = None
    weather: WeatherIn
    farm_size: float = Field(DEFAULT_FARM_SIZE, gt=0)
    season: Optional[Season] = None


class FertilizerIn(BaseModel):
    soil: SoilIn
    farm_size: float = Field(DEFAULT_FARM_SIZE, gt=0)


class CropOut(BaseModel):
    id: str
    name: str
    local_name: str
    season: Season
    duration: int
    water_requirement: WaterRequirement
    soil_types: List[SoilType]
    temp_min: float
    temp_max: float
    yield_kg: float
    market_price: float


class RecoOut(BaseModel):
    crop: CropOut
    score: float
    reasons: List[str]
    sowing_date: date
    harvest_date: date
    expected_yield: int
    estimated_profit: float


class SoilHealthOut(BaseModel):
    overall_score: int
    status: str
    recommendations: List[str]
    improvements: List[str]


class AlertOut(BaseModel):
    kind: str
    date: str
    message: str
    severity: str


class AlertsOut(BaseModel):
    alerts: List[str]
    irrigation: List[str]
    forecast: List[AlertOut]


def crop_out(c: Crop) -> CropOut:
    return CropOut(**asdict(c))


def reco_out(r: Recommendation) -> RecoOut:
    return RecoOut(
        crop=crop_out(r.crop),
        score=round(r.score, 2),
        reasons=r.reasons,
        sowing_date=r.sowing_date,
        harvest_date=r.harvest_date,
        expected_yield=r.expected_yield,
        estimated_profit=r.estimated_profit,
    )


def soil_from(s: SoilIn) -> SoilSample:
    n = s.nutrients
    return SoilSample(
        type=s.type,
        ph=s.ph,
        organic_matter=s.organic_matter,
        nutrients=Nutrients(nitrogen=n.nitrogen, phosphorus=n.phosphorus, potassium=n.potassium),
        moisture=s.moisture,
    )


def weather_from(w: WeatherIn) -> WeatherSnapshot:
    return WeatherSnapshot(
        temperature=w.temperature,
        humidity=w.humidity,
        rainfall=w.rainfall,
        wind_speed=w.wind_speed,
        pressure=w.pressure,
        forecast=[ForecastDay(f.date, f.temp_min, f.temp_max, f.humidity, f.rainfall, f.condition)
                  for f in w.forecast],
    )


@app.get("/crops", response_model=List[CropOut])
def crops():
    return [crop_out(c) for c in all_crops()]


@app.get("/crops/{crop_id}", response_model=CropOut)
def crop(crop_id: str):
    c = get_crop(crop_id)
    if c is None:
        raise HTTPException(status_code=404, detail=f"Unknown crop: {crop_id}")
    return crop_out(c)


@app.post("/recommendations", response_model=List[RecoOut])
def score_recommendations(req: RecommendationIn, strict: bool = Query(False, description="Reject inputs instead of skipping credit")):
    soil = soil_from(req.soil) if req.soil else default_soil()
    season = req.season or season_from_month(date.today().month)
    try:
        recos = recommend_crops(req.location.model_dump(), soil, weather_from(req.weather),
                                req.farm_size, season, strict=strict)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Error scoring recommendations: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to generate recommendations: {str(e)}")
    return [reco_out(r) for r in recos]


@app.get("/recommendations", response_model=List[RecoOut])
def recommendations(lat: float = DEFAULT_LOCATION["lat"], lon: float = DEFAULT_LOCATION["lon"],
                    farm_size: float = Query(DEFAULT_FARM_SIZE, gt=0), season: Optional[Season] = None,
                    state: Optional[str] = None):
    try:
        logger.info(f"Fetching recommendations for lat={lat}, lon={lon}, state={state}")

        # Both providers fall back to defaults if their API fails
        weather = fetch_weather(lat, lon)
        soil = fetch_soil(lat, lon)

        season = season or season_from_month(date.today().month)
        location = {"state": state, "lat": lat, "lon": lon}
        recos = recommend_crops(location, soil, weather, farm_size, season)

        logger.info(f"Successfully generated {len(recos)} recommendations")
        return [reco_out(r) for r in recos]
    except Exception as e:
        logger.error(f"Error generating recommendations for lat={lat}, lon={lon}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to generate recommendations: {str(e)}")


@app.post("/soil/health", response_model=SoilHealthOut)
def soil_health(soil: SoilIn):
    return SoilHealthOut(**asdict(analyze_soil_health(soil_from(soil))))


@app.post("/soil/fertilizer")
def soil_fertilizer(req: FertilizerIn):
    plan = fertilizer_plan(soil_from(req.soil), req.farm_size)
    return {
        "fertilizers": [asdict(f) for f in plan.fertilizers],
        "total_cost": plan.total_cost,
        "schedule": [{"when": when, "activity": what} for when, what in plan.schedule],
    }


@app.get("/weather")
def weather(lat: float = DEFAULT_LOCATION["lat"], lon: float = DEFAULT_LOCATION["lon"]):
    return asdict(fetch_weather(lat, lon))


@app.get("/alerts", response_model=AlertsOut)
def alerts(lat: float = DEFAULT_LOCATION["lat"], lon: float = DEFAULT_LOCATION["lon"]):
    try:
        w = fetch_weather(lat, lon)
        return AlertsOut(
            alerts=weather_alerts(w),
            irrigation=irrigation_advice(w),
            forecast=[AlertOut(**a.__dict__) for a in forecast_alerts(w)],
        )
    except Exception as e:
        logger.error(f"Error generating alerts for lat={lat}, lon={lon}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to generate alerts: {str(e)}")


@app.get("/market/prices")
def market_prices(limit: int = Query(100, ge=1, le=1000), state: Optional[str] = None,
                  commodity: Optional[str] = None):
    return [asdict(p) for p in fetch_market_prices(limit, state, commodity)]


@app.post("/detect")
def detect_image(
    request: Request,
    file: UploadFile = File(..., description="Photo of the affected plant"),
    crop_type: Optional[str] = Form(None),
    user_id: Optional[str] = Form(None),
):
    # Plain def: the Gemini call blocks, so this runs in the threadpool
    if not file.content_type or not file.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="File must be an image")
    contents = file.file.read()
    if not contents:
        raise HTTPException(status_code=400, detail="Empty image")

    record = detect(contents, file.content_type, request.app.state.detection_history,
                    crop_type=crop_type, user_id=user_id, image_name=file.filename)
    return asdict(record)


@app.get("/detect/history")
def detection_history(request: Request, user_id: Optional[str] = None):
    return [asdict(r) for r in request.app.state.detection_history.list(user_id)]


@app.get("/soil/improvement-cost")
def improvement_cost(farm_size: float = Query(DEFAULT_FARM_SIZE, gt=0),
                     level: Literal["basic", "moderate", "comprehensive"] = "basic"):
    return soil_improvement_cost(farm_size, level)


@app.get("/soil/testing")
def soil_testing(state: str = DEFAULT_LOCATION["state"], district: str = DEFAULT_LOCATION["district"]):
    return asdict(soil_testing_recommendations({"state": state, "district": district}))


@app.get("/soil/organic")
def soil_organic():
    return asdict(organic_farming_recommendations())


class AdvisoryIn(BaseModel):
    query: str = Field(min_length=1)
    language: Literal["en", "hi", "pa", "regional"] = "en"
    state: Optional[str] = None
    district: Optional[str] = None
    temperature_c: Optional[float] = None
    rainfall_mm: Optional[float] = None
    ph: Optional[float] = None
    organic_matter: Optional[float] = None


class AdvisoryOut(BaseModel):
    advice: str


@app.post("/advisory", response_model=AdvisoryOut)
def advisory(req: AdvisoryIn):
    context = req.model_dump(exclude={"query", "language"})
    logger.info(f"Crop advisory requested (language={req.language})")
    return AdvisoryOut(advice=get_crop_advisory(build_advisory_prompt(req.query, context), req.language))


if __name__ == "__main__":
    import uvicorn
    logger.info("Starting Uvicorn server on http://0.0.0.0:8000")
    uvicorn.run(app, host="0.0.0.0", port=8000)
