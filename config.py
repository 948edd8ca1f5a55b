import os
from dotenv import load_dotenv

load_dotenv()

DEFAULT_FORECAST_DAYS = 7
TIMEZONE = "Asia/Kolkata"
HTTP_TIMEOUT = 30

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"
SOILGRIDS_URL = "https://rest.isric.org/soilgrids/v2.0/properties/query"
MARKET_API_URL = os.getenv(
    "MARKET_API_BASE",
    "https://api.data.gov.in/resource/9ef84268-d588-465a-a308-a864a43d0070",
)
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
GROQ_URL = "https://api.groq.com/openai/v1/chat/completions"
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")


def get_gemini_api_key() -> str:
    return os.getenv("GEMINI_API_KEY", "")


def get_groq_api_key() -> str:
    return os.getenv("GROQ_API_KEY", "")


def get_market_api_key() -> str:
    return os.getenv("DATA_GOV_API_KEY", "")


# Fallback location when the caller gives none (New Delhi)
DEFAULT_LOCATION = {
    "state": "Delhi",
    "district": "New Delhi",
    "village": "Central Delhi",
    "lat": 28.6139,
    "lon": 77.2090,
}
DEFAULT_FARM_SIZE = 2.0  # acres

# Crop scoring weights; they sum to 1.0
SCORE_WEIGHTS = {
    "soil": 0.30,
    "temperature": 0.25,
    "season": 0.20,
    "water": 0.15,
    "price": 0.10,
}
ACCEPTANCE_THRESHOLD = 0.6
GOOD_PRICE_PER_KG = 20
HIGH_YIELD_KG = 2000
KHARIF_SOWING_LEAD_DAYS = 30
DEFAULT_SOWING_LEAD_DAYS = 60

DETECTION_HISTORY_LIMIT = 100
