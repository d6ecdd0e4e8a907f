"""Client for the generative-AI receipt extraction service (Gemini REST API)."""

from __future__ import annotations

import base64
import time
from typing import Any

import httpx

from receiptbeaver.receipt.extraction import EXTRACTION_PROMPT, RESPONSE_SCHEMA, load_model_json
from receiptbeaver.receipt.image_helpers import JPEG_MIME_TYPE, normalize_receipt_image
from receiptbeaver.runtime.config import AppConfig
from receiptbeaver.runtime.logging import get_logger

logger = get_logger(__name__)


class ExtractionServiceUnavailable(RuntimeError):
    """Raised when the extraction service cannot be reached or returns an error."""


def build_generate_request(image_bytes: bytes, mime_type: str = JPEG_MIME_TYPE) -> dict[str, Any]:
    """Request body for a single-image ``generateContent`` call."""
    return {
        "contents": [
            {
                "role": "user",
                "parts": [
                    {
                        "inline_data": {
                            "mime_type": mime_type,
                            "data": base64.b64encode(image_bytes).decode("ascii"),
                        }
                    },
                    {"text": EXTRACTION_PROMPT},
                ],
            }
        ],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": RESPONSE_SCHEMA,
        },
    }


def response_text(payload: dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = payload.get("candidates") or []
    if not isinstance(candidates, list) or not candidates:
        raise ExtractionServiceUnavailable("Extraction service returned no candidates")
    candidate = candidates[0]
    content = candidate.get("content") if isinstance(candidate, dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        raise ExtractionServiceUnavailable("Extraction service returned a malformed candidate")
    text = "".join(str(part.get("text") or "") for part in parts if isinstance(part, dict))
    if not text.strip():
        raise ExtractionServiceUnavailable("Extraction service returned an empty answer")
    return text


class ReceiptExtractor:
    """Sends receipt photos to the model and returns its decoded JSON answer."""

    def __init__(self, config: AppConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.config = config
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.config.genai_base_url}/models/{self.config.genai_model}:generateContent"

    async def extract(self, image_bytes: bytes) -> dict[str, Any]:
        if not self.config.genai_api_key:
            raise ExtractionServiceUnavailable("Missing Gemini API key (set GOOGLE_GENAI_API_KEY)")

        try:
            prepared = normalize_receipt_image(image_bytes)
        except Exception as e:
            raise ExtractionServiceUnavailable(f"Unreadable receipt image: {e}") from e

        body = build_generate_request(prepared)
        logger.info("Sending receipt to extraction model %s...", self.config.genai_model)

        try:
            start_time = time.time()
            async with httpx.AsyncClient(timeout=self.config.extraction_timeout, transport=self._transport) as client:
                response = await client.post(
                    self.endpoint,
                    params={"key": self.config.genai_api_key},
                    json=body,
                )
            elapsed_time = time.time() - start_time
            logger.info("Extraction service returned in %.2f seconds", elapsed_time)
        except httpx.RequestError as e:
            logger.error("Failed to connect to extraction service: %s", e)
            raise ExtractionServiceUnavailable(f"Failed to connect to extraction service: {e}") from e

        if response.status_code != 200:
            logger.error("Extraction service error: %s", response.status_code)
            raise ExtractionServiceUnavailable(f"Extraction service error: {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise ExtractionServiceUnavailable("Extraction service returned non-JSON response") from e
        if not isinstance(payload, dict):
            raise ExtractionServiceUnavailable("Extraction service returned an unexpected response")

        return load_model_json(response_text(payload))
