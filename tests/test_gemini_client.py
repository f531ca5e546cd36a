from __future__ import annotations

import base64

import pytest
import requests

from errors import GenerationError
from gemini.client import GeminiClient, safe_json_load
from gemini.prompts import build_card_prompt, build_image_prompt, build_world_prompt


class _FakeResponse:
    def __init__(self, status_code=200, payload=None, headers=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class _FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.exc is not None:
            raise self.exc
        return self.response


def _image_payload(data: bytes, mime: str = "image/png"):
    return {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"text": "here you go"},
                        {"inlineData": {"mimeType": mime, "data": base64.b64encode(data).decode("ascii")}},
                    ]
                }
            }
        ]
    }


def test_generate_image_decodes_inline_data():
    session = _FakeSession(_FakeResponse(payload=_image_payload(b"pixels", "image/jpeg")))
    client = GeminiClient("k", image_model="img-model", session=session)
    data, mime = client.generate_image("a dragon")

    assert (data, mime) == (b"pixels", "image/jpeg")
    url, kwargs = session.calls[0]
    assert url.endswith("/img-model:generateContent")
    assert kwargs["headers"]["x-goog-api-key"] == "k"
    assert kwargs["json"]["generationConfig"]["responseModalities"] == ["TEXT", "IMAGE"]
    assert kwargs["json"]["contents"][0]["parts"][0]["text"] == "a dragon"


def test_generate_image_http_error_carries_retry_hints():
    resp = _FakeResponse(status_code=429, headers={"Retry-After": "12"}, text="slow down")
    client = GeminiClient("k", session=_FakeSession(resp))
    with pytest.raises(GenerationError) as ei:
        client.generate_image("x")
    assert ei.value.details["retriable"] is True
    assert ei.value.details["retry_after_s"] == 12.0


def test_generate_image_without_image_part():
    payload = {"candidates": [{"content": {"parts": [{"text": "sorry"}]}}]}
    client = GeminiClient("k", session=_FakeSession(_FakeResponse(payload=payload)))
    with pytest.raises(GenerationError) as ei:
        client.generate_image("x")
    assert ei.value.code == "GENERATION_UNPARSABLE"


def test_generate_image_network_error():
    client = GeminiClient("k", session=_FakeSession(exc=requests.exceptions.ConnectionError("down")))
    with pytest.raises(GenerationError) as ei:
        client.generate_image("x")
    assert ei.value.code == "GENERATION_FAILED"


def test_missing_api_key_is_unavailable():
    client = GeminiClient("", session=_FakeSession())
    with pytest.raises(GenerationError) as ei:
        client.generate_image("x")
    assert ei.value.code == "GENERATION_UNAVAILABLE"
    with pytest.raises(GenerationError):
        client.generate_json("x", schema={})


def test_safe_json_load_handles_fences_and_garbage():
    assert safe_json_load('```json\n{"a": 1}\n```') == {"a": 1}
    assert safe_json_load('{"a": 1}') == {"a": 1}
    assert safe_json_load("[1, 2]") is None
    assert safe_json_load("not json") is None


def test_prompts_carry_inputs():
    world = build_world_prompt(["fire", "ice"], ["moss"])
    assert "fire, ice" in world and "moss" in world

    card = build_card_prompt(
        world_description="A drowned volcano",
        themes=["fire"],
        resource_types=["Magma", "Coral", "Steam"],
        field_context="2 creatures on field",
    )
    assert "A drowned volcano" in card
    assert "Magma, Coral, Steam" in card
    assert "CURRENT FIELD STATE: 2 creatures on field" in card
    assert "DEAL_DAMAGE_AOE" in card

    no_field = build_card_prompt(world_description="w", themes=[], resource_types=["a"])
    assert "CURRENT FIELD STATE" not in no_field

    image = build_image_prompt("a wyrm", "x" * 500)
    assert "a wyrm" in image
    assert "x" * 200 in image and "x" * 201 not in image
