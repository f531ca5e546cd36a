from __future__ import annotations

"""Gemini generation client.

- generate_json: text model via google.generativeai, schema-constrained JSON
- generate_image: image model via the REST generateContent endpoint
  (responseModalities TEXT+IMAGE), returns decoded inlineData bytes

Both raise GenerationError; callers decide whether that is fatal
(world / card generation) or logged and retried (image jobs).
"""

import base64
import json
import logging
from typing import Any, Dict, Optional, Protocol, Tuple

import requests

import config
from errors import (
    GENERATION_FAILED,
    GENERATION_UNAVAILABLE,
    GENERATION_UNPARSABLE,
    GenerationError,
)

logger = logging.getLogger(__name__)

GEMINI_REST_BASE = "https://generativelanguage.googleapis.com/v1beta/models"

RETRIABLE_HTTP_STATUSES = (429, 500, 502, 503, 504)


class GenerationClient(Protocol):
    def generate_json(self, prompt: str, *, schema: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def generate_image(self, prompt: str) -> Tuple[bytes, str]:
        ...


def _extract_text(resp: Any) -> str:
    text = getattr(resp, "text", None)
    if isinstance(text, str) and text.strip():
        return text
    try:
        parts = resp.candidates[0].content.parts
        out = []
        for p in parts:
            t = getattr(p, "text", None)
            if isinstance(t, str) and t:
                out.append(t)
        if out:
            return "\n".join(out)
    except Exception:
        pass
    return ""


def safe_json_load(text: str) -> Optional[Dict[str, Any]]:
    s = (text or "").strip()
    if s.startswith("```"):
        chunks = s.split("```")
        if len(chunks) >= 3:
            s = chunks[1].strip()
            if s.lower().startswith("json"):
                s = s[4:].strip()
    try:
        obj = json.loads(s)
    except ValueError:
        return None
    if not isinstance(obj, dict):
        return None
    return obj


def _parse_retry_after_seconds(headers: Any) -> Optional[float]:
    if not headers:
        return None
    value = headers.get("Retry-After")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class GeminiClient:
    def __init__(
        self,
        api_key: str,
        *,
        text_model: str = config.TEXT_MODEL_NAME,
        image_model: str = config.IMAGE_MODEL_NAME,
        timeout_s: float = config.GEMINI_HTTP_TIMEOUT_S,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = str(api_key or "").strip()
        self.text_model = text_model
        self.image_model = image_model
        self.timeout_s = float(timeout_s)
        self._session = session or requests.Session()

    @classmethod
    def from_config(cls) -> "GeminiClient":
        return cls(config.GEMINI_API_KEY)

    def _require_key(self) -> None:
        if not self.api_key:
            raise GenerationError(GENERATION_UNAVAILABLE, "Generation service is not configured (GEMINI_API_KEY)")

    # ------------------------
    # Text
    # ------------------------

    def generate_json(self, prompt: str, *, schema: Dict[str, Any]) -> Dict[str, Any]:
        self._require_key()
        import google.generativeai as genai

        try:
            genai.configure(api_key=self.api_key)
            model = genai.GenerativeModel(self.text_model)
            resp = model.generate_content(
                prompt,
                generation_config=genai.GenerationConfig(
                    response_mime_type="application/json",
                    response_schema=schema,
                ),
                request_options={"timeout": self.timeout_s},
            )
        except Exception as exc:
            logger.warning("text generation failed: model=%s err=%s", self.text_model, exc, exc_info=True)
            raise GenerationError(
                GENERATION_FAILED,
                "Generation service request failed",
                {"model": self.text_model, "error": str(exc)},
            ) from exc

        raw = _extract_text(resp)
        obj = safe_json_load(raw)
        if obj is None:
            logger.warning("text generation returned non-JSON output: model=%s raw=%r", self.text_model, raw[:500])
            raise GenerationError(
                GENERATION_UNPARSABLE,
                "Generation service returned unparsable output",
                {"model": self.text_model},
            )
        return obj

    # ------------------------
    # Image
    # ------------------------

    def generate_image(self, prompt: str) -> Tuple[bytes, str]:
        """One image request. Returns (bytes, mime_type)."""
        self._require_key()
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
        }
        url = f"{GEMINI_REST_BASE}/{self.image_model}:generateContent"
        try:
            resp = self._session.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json", "x-goog-api-key": self.api_key},
                timeout=self.timeout_s,
            )
        except requests.exceptions.RequestException as exc:
            raise GenerationError(
                GENERATION_FAILED,
                "Image request failed",
                {"model": self.image_model, "error": str(exc), "retriable": True},
            ) from exc

        if resp.status_code >= 400:
            raise GenerationError(
                GENERATION_FAILED,
                f"Image request failed with HTTP {resp.status_code}",
                {
                    "model": self.image_model,
                    "status": resp.status_code,
                    "retriable": resp.status_code in RETRIABLE_HTTP_STATUSES,
                    "retry_after_s": _parse_retry_after_seconds(resp.headers),
                    "body": (resp.text or "")[:800],
                },
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise GenerationError(GENERATION_UNPARSABLE, "Image response was not JSON", {"model": self.image_model}) from exc

        candidates = data.get("candidates") or []
        parts = []
        if candidates:
            parts = (candidates[0].get("content") or {}).get("parts") or []
        for p in parts:
            inline = p.get("inlineData") or {}
            mime = str(inline.get("mimeType") or "image/png")
            if inline.get("data") and mime.startswith("image/"):
                return base64.b64decode(inline["data"]), mime

        raise GenerationError(
            GENERATION_UNPARSABLE,
            "No image inlineData found in response",
            {"model": self.image_model, "raw": json.dumps(data)[:500]},
        )
