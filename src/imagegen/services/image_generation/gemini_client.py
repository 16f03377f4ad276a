"""Gemini generateContent client for image generation with error classification."""

import json
from typing import Any, Optional

import httpx

from imagegen.services.exceptions import (
    EmptyImageError,
    GeminiAPIError,
    GeminiConfigurationError,
    GeminiResponseParseError,
    GeminiTransportError,
)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.0-flash-exp"
PROMPT_TEMPLATE = "Generate an image: {prompt}"


def to_data_uri(mime_type: str, data: str) -> str:
    """Format base64 image data as a data URI."""
    return f"data:{mime_type};base64,{data}"


def extract_data_uri(raw_body: str) -> str:
    """Extract the first inline image from a generateContent response body.

    Only the first content part of the first candidate is inspected.

    Args:
        raw_body: Response body text

    Returns:
        Data URI built from the part's mime type and base64 payload

    Raises:
        GeminiResponseParseError: Body is not JSON or does not have the expected shape
        EmptyImageError: No candidate, no part, or the inline data is empty
    """
    try:
        payload = json.loads(raw_body)
    except (RecursionError, ValueError) as e:
        raise GeminiResponseParseError(f"Failed to parse Gemini response: {e}", raw_body) from e

    if not isinstance(payload, dict):
        raise GeminiResponseParseError("Failed to parse Gemini response", raw_body)

    try:
        candidates = payload.get("candidates") or []
        if not candidates:
            raise EmptyImageError("No image generated in response", raw_body)

        parts = (candidates[0].get("content") or {}).get("parts") or []
        if not parts:
            raise EmptyImageError("No image generated in response", raw_body)

        part = parts[0]
        # REST responses use camelCase, some SDK dumps use snake_case
        inline_data = part.get("inlineData") or part.get("inline_data") or {}
        data = inline_data.get("data") or ""
        mime_type = inline_data.get("mimeType") or inline_data.get("mime_type") or ""
    except (AttributeError, IndexError, KeyError, TypeError) as e:
        raise GeminiResponseParseError(f"Failed to parse Gemini response: {e}", raw_body) from e

    if not data:
        raise EmptyImageError("No image generated in response", raw_body)

    if not isinstance(data, str) or not isinstance(mime_type, str):
        raise GeminiResponseParseError(
            "Failed to parse Gemini response: inline data fields must be strings", raw_body
        )

    return to_data_uri(mime_type, data)


class GeminiClient:
    """Single-shot image generation client for the Gemini REST API."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 60.0,
        generation_config: Optional[dict[str, Any]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize Gemini client.

        Args:
            api_key: Gemini API key (from GEMINI_API_KEY env var)
            model: Model name used in the generateContent path
            base_url: API base URL
            timeout_seconds: Timeout applied to the whole request
            generation_config: Overrides merged into the default generationConfig
            http_client: Shared AsyncClient (a short-lived one is created per call if None)
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.generation_config = {
            "temperature": 1,
            "topK": 40,
            "topP": 0.95,
            "maxOutputTokens": 8192,
            "responseMimeType": "image/jpeg",
        }
        if generation_config:
            self.generation_config.update(generation_config)
        self.http_client = http_client

    @classmethod
    def from_settings(cls, settings, http_client: Optional[httpx.AsyncClient] = None):
        """Build a client from application Settings."""
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout_seconds=settings.gemini_timeout_seconds,
            generation_config={
                "temperature": settings.gemini_temperature,
                "topK": settings.gemini_top_k,
                "topP": settings.gemini_top_p,
                "maxOutputTokens": settings.gemini_max_output_tokens,
                "responseMimeType": settings.gemini_response_mime_type,
            },
            http_client=http_client,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def ensure_configured(self) -> None:
        """Raise GeminiConfigurationError if no API key is set."""
        if not self.is_configured:
            raise GeminiConfigurationError("Gemini API key not configured")

    def build_payload(self, prompt: str) -> dict[str, Any]:
        """Build the generateContent request body for a prompt."""
        return {
            "contents": [
                {
                    "parts": [
                        {"text": PROMPT_TEMPLATE.format(prompt=prompt)},
                    ],
                },
            ],
            "generationConfig": dict(self.generation_config),
        }

    async def generate(self, prompt: str) -> str:
        """Generate an image for a prompt.

        Args:
            prompt: Validated, non-empty prompt text

        Returns:
            Data URI of the generated image (data:<mime>;base64,<payload>)

        Raises:
            GeminiConfigurationError: API key missing
            GeminiTransportError: Timeout or network failure
            GeminiAPIError: Non-200 response
            GeminiResponseParseError: Unparseable response body
            EmptyImageError: Response without inline image data
        """
        self.ensure_configured()

        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        payload = self.build_payload(prompt)

        try:
            if self.http_client is not None:
                response = await self.http_client.post(
                    self.endpoint, headers=headers, json=payload, timeout=self.timeout_seconds
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.post(self.endpoint, headers=headers, json=payload)
        except httpx.TimeoutException as e:
            raise GeminiTransportError(
                f"Failed to call Gemini API: timeout after {self.timeout_seconds}s"
            ) from e
        except httpx.HTTPError as e:
            raise GeminiTransportError(f"Failed to call Gemini API: {e}") from e

        raw_body = response.text

        if response.status_code != 200:
            raise GeminiAPIError(response.status_code, raw_body)

        return extract_data_uri(raw_body)
