import json
import httpx
import logging

from config import GEMINI_URL, GEMINI_MODEL, GROQ_URL, GROQ_MODEL, HTTP_TIMEOUT, get_gemini_api_key, get_groq_api_key

logger = logging.getLogger(__name__)

BASE_PROMPT = (
    "You are KrishiMitra, an agricultural advisor for Indian farmers. Provide concise, actionable, "
    "safety-first crop advisory using Integrated Pest Management (IPM) with cultural, biological, "
    "and chemical (as last resort) measures. Include bullets for: What to check, Immediate steps, "
    "Prevention, and If severity is high. Keep response under 200 words."
)
LANGUAGE_SUFFIX = {
    "hi": " उत्तर हिंदी में दें। सरल भाषा का उपयोग करें।",
    "pa": " ਜਵਾਬ ਪੰਜਾਬੀ ਵਿੱਚ ਦਿਓ। ਸੌਖੀ ਭਾਸ਼ਾ ਵਰਤੋਂ।",
}
DEFAULT_SUFFIX = " Answer in English in simple terms."

TEMPERATURE = 0.6
MAX_TOKENS = 512
NO_ADVICE = "No advice available."

# Tried in order when Groq reports a retired or unknown model
GROQ_FALLBACK_MODELS = ["llama-3.2-11b-text-preview", "llama-3.1-8b-instant", "mixtral-8x7b-32768"]


class AdvisoryError(Exception):
    pass


def build_system_prompt(language: str = "en") -> str:
    return BASE_PROMPT + LANGUAGE_SUFFIX.get(language, DEFAULT_SUFFIX)


def build_advisory_prompt(query: str, context: dict | None = None) -> str:
    """Append the farm context (location, weather, soil) to the farmer's question as JSON."""
    context = {k: v for k, v in (context or {}).items() if v is not None}
    if not context:
        return query
    return f"{query}\n\nContext (JSON): {json.dumps(context, ensure_ascii=False)}"


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict) and err.get("message"):
            return err["message"]
        if data.get("message"):
            return data["message"]
    return f"HTTP {response.status_code}"


def _ask_groq(system: str, prompt: str, model: str, api_key: str) -> str:
    body = {
        "model": model,
        "messages": [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ],
        "temperature": TEMPERATURE,
        "max_tokens": MAX_TOKENS,
    }
    try:
        r = httpx.post(GROQ_URL, headers={"Authorization": f"Bearer {api_key}"}, json=body, timeout=HTTP_TIMEOUT)
        r.raise_for_status()
        data = r.json()
    except httpx.HTTPStatusError as e:
        logger.error(f"Groq API returned error {e.response.status_code} for model {model}")
        raise AdvisoryError(_error_message(e.response))
    except httpx.RequestError as e:
        logger.error(f"Network error when calling Groq: {e}")
        raise AdvisoryError(f"Failed to connect to Groq: {e}")
    except ValueError as e:
        raise AdvisoryError(f"Unreadable Groq response: {e}")

    try:
        text = data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError):
        text = ""
    return text.replace("*", "") or NO_ADVICE


def _ask_groq_with_fallbacks(system: str, prompt: str, api_key: str) -> str:
    models = [GROQ_MODEL] + [m for m in GROQ_FALLBACK_MODELS if m != GROQ_MODEL]
    last_error = None
    for model in models:
        try:
            return _ask_groq(system, prompt, model, api_key)
        except AdvisoryError as e:
            msg = str(e).lower()
            if "decommission" in msg or "invalid" in msg or "model" in msg:
                logger.warning(f"Groq model {model} unavailable, trying next: {e}")
                last_error = e
                continue
            raise
    raise last_error or AdvisoryError("Groq request failed")


def _ask_gemini(system: str, prompt: str, api_key: str) -> str:
    body = {
        "contents": [{"role": "user", "parts": [{"text": system + "\n\nUser query: " + prompt}]}],
        "generationConfig": {"temperature": TEMPERATURE, "maxOutputTokens": MAX_TOKENS},
    }
    try:
        r = httpx.post(GEMINI_URL.format(model=GEMINI_MODEL), params={"key": api_key},
                       json=body, timeout=HTTP_TIMEOUT)
        r.raise_for_status()
        data = r.json()
    except httpx.HTTPStatusError as e:
        logger.error(f"Gemini API returned error {e.response.status_code}")
        raise AdvisoryError(f"Gemini API error: {e.response.status_code}")
    except httpx.RequestError as e:
        logger.error(f"Network error when calling Gemini: {e}")
        raise AdvisoryError(f"Failed to connect to Gemini: {e}")
    except ValueError as e:
        raise AdvisoryError(f"Unreadable Gemini response: {e}")

    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"] or ""
    except (KeyError, IndexError, TypeError):
        text = ""
    return text or NO_ADVICE


def _ask(system: str, prompt: str) -> str:
    groq_key = get_groq_api_key()
    if groq_key:
        return _ask_groq_with_fallbacks(system, prompt, groq_key)
    gemini_key = get_gemini_api_key()
    if not gemini_key:
        raise AdvisoryError("No AI API key configured")
    return _ask_gemini(system, prompt, gemini_key)


def get_crop_advisory(prompt: str, language: str = "en") -> str:
    """
    Ask the configured model (Groq when GROQ_API_KEY is set, Gemini otherwise)
    for crop advice. Retries once; on a second failure returns an apology
    string instead of raising.
    """
    system = build_system_prompt(language)
    try:
        try:
            return _ask(system, prompt)
        except AdvisoryError as e:
            logger.warning(f"Advisory request failed, retrying once: {e}")
            return _ask(system, prompt)
    except AdvisoryError as e:
        logger.error(f"AI advisory failed: {e}")
        return f"Sorry, I could not generate advice. {e}".strip()
