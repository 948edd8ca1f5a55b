from dataclasses import dataclass, field
from datetime import datetime, timezone
import base64
import json
import re
import uuid
import httpx
import logging

from config import GEMINI_URL, GEMINI_MODEL, HTTP_TIMEOUT, DETECTION_HISTORY_LIMIT, get_gemini_api_key

logger = logging.getLogger(__name__)

CATEGORIES = {"pest", "disease", "nutrient_deficiency", "healthy", "unknown"}

PROMPT = """
You are an agricultural expert specializing in plant disease and pest identification.
Analyze the plant image and provide a detailed assessment.
{crop_line}
Please provide your analysis in the following JSON format:
{{
  "canonical": "disease_or_pest_identifier",
  "displayName": "Human readable name",
  "category": "disease" or "pest" or "nutrient_deficiency" or "healthy",
  "confidence": 0.85,
  "scientificName": "Scientific name if applicable",
  "overview": "Brief description of the condition",
  "prevention": ["Prevention method 1", "Prevention method 2"],
  "treatment": ["Treatment method 1", "Treatment method 2"]
}}

Focus on:
1. Identifying any diseases, pests, or nutrient deficiencies
2. If the plant appears healthy, indicate that
3. Provide practical, actionable advice for farmers
4. Use simple language that farmers can understand
5. Include both prevention and treatment strategies
"""


@dataclass
class PestInfo:
    scientific_name: str | None = None
    overview: str = ""
    prevention: list[str] = field(default_factory=list)
    treatment: list[str] = field(default_factory=list)


@dataclass
class DetectionResult:
    model: str
    label: str
    display_name: str
    confidence: float
    category: str
    pest_info: PestInfo | None = None


@dataclass
class DetectionRecord:
    id: str
    created_at: datetime
    result: DetectionResult
    image_name: str | None = None
    crop_type: str | None = None
    user_id: str | None = None


class DetectionHistory:
    """Newest-first, bounded list of detection records."""

    def __init__(self, limit: int = DETECTION_HISTORY_LIMIT):
        self.limit = limit
        self._records: list[DetectionRecord] = []

    def add(self, record: DetectionRecord) -> None:
        self._records.insert(0, record)
        del self._records[self.limit:]

    def list(self, user_id: str | None = None) -> list[DetectionRecord]:
        if user_id is None:
            return list(self._records)
        return [r for r in self._records if r.user_id == user_id]

    def __len__(self):
        return len(self._records)


def fallback_result() -> DetectionResult:
    return DetectionResult(
        model="fallback-mock",
        label="healthy_plant",
        display_name="Plant appears healthy",
        confidence=0.5,
        category="healthy",
        pest_info=PestInfo(
            overview="Unable to analyze image. Please try again with a clearer photo.",
            prevention=[
                "Maintain proper irrigation",
                "Monitor for early signs of disease",
                "Use crop rotation",
            ],
            treatment=[
                "Contact local agricultural extension office",
                "Consult with agricultural expert",
            ],
        ),
    )


def build_prompt(crop_type: str | None = None) -> str:
    crop_line = f"The crop type is: {crop_type}\n" if crop_type else ""
    return PROMPT.format(crop_line=crop_line)


def parse_reply(text: str, model: str = GEMINI_MODEL) -> DetectionResult:
    """
    Pull the first {...} block out of a model reply and map it onto a DetectionResult.
    Raises ValueError when there is no JSON object to read.
    """
    match = re.search(r"\{.*\}", text or "", re.DOTALL)
    if not match:
        raise ValueError("No JSON found in response")
    analysis = json.loads(match.group(0))
    if not isinstance(analysis, dict):
        raise ValueError("Model reply is not a JSON object")

    try:
        confidence = float(analysis.get("confidence") or 0.5)
    except (TypeError, ValueError):
        confidence = 0.5
    category = analysis.get("category") or "unknown"

    return DetectionResult(
        model=model,
        label=analysis.get("canonical") or "unknown",
        display_name=analysis.get("displayName") or "Unknown Condition",
        confidence=min(0.99, max(0.1, confidence)),
        category=category if category in CATEGORIES else "unknown",
        pest_info=PestInfo(
            scientific_name=analysis.get("scientificName"),
            overview=analysis.get("overview") or "Analysis completed",
            prevention=list(analysis.get("prevention") or []),
            treatment=list(analysis.get("treatment") or []),
        ),
    )


def analyze_image(image: bytes, mime_type: str | None = None, crop_type: str | None = None,
                  api_key: str | None = None) -> DetectionResult:
    api_key = api_key if api_key is not None else get_gemini_api_key()
    if not api_key:
        logger.warning("GEMINI_API_KEY not configured, returning fallback detection")
        return fallback_result()

    if not mime_type or not mime_type.startswith("image/"):
        mime_type = "image/jpeg"
    body = {
        "contents": [{
            "parts": [
                {"text": build_prompt(crop_type)},
                {"inlineData": {"data": base64.b64encode(image).decode("ascii"), "mimeType": mime_type}},
            ]
        }],
        "generationConfig": {"temperature": 0.3, "maxOutputTokens": 1024},
    }
    try:
        r = httpx.post(GEMINI_URL.format(model=GEMINI_MODEL), params={"key": api_key},
                       json=body, timeout=HTTP_TIMEOUT)
        r.raise_for_status()
        data = r.json()
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except httpx.HTTPStatusError as e:
        logger.error(f"Gemini API returned error {e.response.status_code}")
        return fallback_result()
    except httpx.RequestError as e:
        logger.error(f"Network error when calling Gemini: {e}")
        return fallback_result()
    except (KeyError, IndexError, TypeError, ValueError) as e:
        logger.error(f"Unexpected Gemini payload: {e}")
        return fallback_result()

    try:
        return parse_reply(text)
    except ValueError as e:
        logger.warning(f"Failed to parse Gemini response, using fallback: {e}")
        return fallback_result()


def detect(image: bytes, mime_type: str | None, history: DetectionHistory, *, crop_type: str | None = None,
           user_id: str | None = None, image_name: str | None = None) -> DetectionRecord:
    result = analyze_image(image, mime_type, crop_type)
    record = DetectionRecord(
        id=f"detect_{uuid.uuid4().hex[:12]}",
        created_at=datetime.now(timezone.utc),
        result=result,
        image_name=image_name,
        crop_type=crop_type,
        user_id=user_id,
    )
    history.add(record)
    logger.info(f"Detection {record.id}: {result.label} ({result.confidence:.2f}) via {result.model}")
    return record
