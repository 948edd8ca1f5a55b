import json

import httpx
import pytest

from conftest import json_response
import detection
from detection import (
    DetectionHistory, analyze_image, build_prompt, detect, fallback_result, parse_reply,
)

REPLY = {
    "canonical": "rice_blast",
    "displayName": "Rice Blast",
    "category": "disease",
    "confidence": 0.87,
    "scientificName": "Magnaporthe oryzae",
    "overview": "Fungal disease causing spindle-shaped lesions.",
    "prevention": ["Avoid excess nitrogen"],
    "treatment": ["Apply Tricyclazole"],
}


def gemini_payload(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def test_parse_reply_extracts_embedded_json():
    text = "Here is my analysis:\n```json\n" + json.dumps(REPLY) + "\n```"
    result = parse_reply(text, model="gemini-test")
    assert result.model == "gemini-test"
    assert result.label == "rice_blast"
    assert result.display_name == "Rice Blast"
    assert result.category == "disease"
    assert result.confidence == pytest.approx(0.87)
    assert result.pest_info.scientific_name == "Magnaporthe oryzae"
    assert result.pest_info.treatment == ["Apply Tricyclazole"]


@pytest.mark.parametrize("confidence,expected", [(1.5, 0.99), (0.01, 0.1), ("high", 0.5), (None, 0.5)])
def test_parse_reply_clamps_confidence(confidence, expected):
    result = parse_reply(json.dumps({**REPLY, "confidence": confidence}))
    assert result.confidence == pytest.approx(expected)


def test_parse_reply_defaults():
    result = parse_reply('{"category": "alien"}')
    assert result.label == "unknown"
    assert result.display_name == "Unknown Condition"
    assert result.category == "unknown"
    assert result.pest_info.overview == "Analysis completed"


def test_parse_reply_without_json():
    with pytest.raises(ValueError):
        parse_reply("I cannot see a plant in this picture.")


def test_build_prompt_mentions_crop():
    assert "The crop type is: wheat" in build_prompt("wheat")
    assert "The crop type is" not in build_prompt()


def test_analyze_image_without_key_uses_fallback(monkeypatch):
    def boom(*a, **kw):
        raise AssertionError("no request expected")
    monkeypatch.setattr(httpx, "post", boom)
    assert analyze_image(b"img", "image/png", api_key="") == fallback_result()


def test_analyze_image_calls_gemini(monkeypatch):
    seen = {}

    def fake_post(url, **kw):
        seen["url"], seen["params"], seen["body"] = url, kw["params"], kw["json"]
        return json_response(gemini_payload(json.dumps(REPLY)), url=url)

    monkeypatch.setattr(httpx, "post", fake_post)
    result = analyze_image(b"\x89PNG", "application/octet-stream", crop_type="rice", api_key="k")
    assert result.label == "rice_blast"
    assert seen["params"] == {"key": "k"}
    assert ":generateContent" in seen["url"]
    parts = seen["body"]["contents"][0]["parts"]
    assert parts[1]["inlineData"]["mimeType"] == "image/jpeg"
    assert parts[1]["inlineData"]["data"] == "iVBORw=="
    assert seen["body"]["generationConfig"]["temperature"] == 0.3


def test_analyze_image_unparsable_reply(monkeypatch):
    monkeypatch.setattr(httpx, "post", lambda url, **kw: json_response(gemini_payload("no idea"), url=url))
    assert analyze_image(b"img", "image/png", api_key="k").model == "fallback-mock"


def test_analyze_image_offline(offline):
    assert analyze_image(b"img", "image/png", api_key="k").label == "healthy_plant"


def test_history_is_bounded_and_newest_first(monkeypatch):
    monkeypatch.setattr(detection, "analyze_image", lambda *a, **kw: fallback_result())
    history = DetectionHistory(limit=3)
    ids = [detect(b"img", "image/png", history, user_id="u1" if i % 2 else "u2").id for i in range(5)]
    assert len(history) == 3
    assert [r.id for r in history.list()] == ids[::-1][:3]
    assert all(r.user_id == "u1" for r in history.list("u1"))
    assert len(history.list("u1")) == 1
