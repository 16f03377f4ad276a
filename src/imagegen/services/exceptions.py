"""Service error hierarchy for image generation and record storage.

- ServiceError: Base for all service errors
- GenerationError: Gemini call failed (never retried, the call is single-shot)
- RecordStoreError: Generation record could not be persisted
- GenerationFailed: Record was marked failed after a GenerationError
"""

from typing import Optional


class ServiceError(Exception):
    """Base exception for all service errors."""

    pass


class GenerationError(ServiceError):
    """Base exception for Gemini image generation errors.

    Attributes:
        raw_body: Raw upstream response body, kept for diagnostics (None when
            no response was received)
    """

    def __init__(self, message: str, raw_body: Optional[str] = None):
        super().__init__(message)
        self.raw_body = raw_body


class GeminiConfigurationError(GenerationError):
    """GEMINI_API_KEY is not configured."""

    pass


class GeminiTransportError(GenerationError):
    """Network failure or timeout while calling Gemini."""

    pass


class GeminiAPIError(GenerationError):
    """Gemini answered with a non-200 status code."""

    def __init__(self, status_code: int, raw_body: str):
        super().__init__(f"Gemini API error (status {status_code}): {raw_body}", raw_body)
        self.status_code = status_code


class GeminiResponseParseError(GenerationError):
    """Gemini response body is not valid JSON or has an unexpected shape."""

    pass


class EmptyImageError(GenerationError):
    """Gemini response contained no inline image data."""

    pass


class RecordStoreError(ServiceError):
    """Generation record could not be read or written."""

    pass


class GenerationFailed(ServiceError):
    """Generation failed and the record was moved to the failed state.

    Attributes:
        record: The failed GenerationRecord
        cause: The GenerationError that caused the failure
    """

    def __init__(self, record, cause: GenerationError):
        super().__init__(str(cause))
        self.record = record
        self.cause = cause
