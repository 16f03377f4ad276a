"""JSON error responses.

Every failure leaves the API as {"error": "..."} with an optional "debug"
field carrying the raw upstream body.
"""

from typing import Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)


class ErrorResponse(BaseModel):
    """Response model for every error."""

    error: str = Field(..., description="Human-readable error message")
    debug: Optional[str] = Field(
        default=None, description="Raw upstream response body, when available"
    )


class APIError(Exception):
    """Exception translated to an ErrorResponse with the given status code."""

    def __init__(self, status_code: int, error: str, debug: Optional[str] = None):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.debug = debug

    def to_response(self) -> JSONResponse:
        body = ErrorResponse(error=self.error, debug=self.debug)
        return JSONResponse(
            status_code=self.status_code,
            content=body.model_dump(exclude_none=True),
        )


def _format_validation_errors(exc: RequestValidationError) -> str:
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        message = err.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages) or "malformed request"


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    return exc.to_response()


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("request.invalid", path=request.url.path, errors=exc.errors())
    return APIError(
        status.HTTP_400_BAD_REQUEST, f"Invalid request: {_format_validation_errors(exc)}"
    ).to_response()


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "request.unhandled_error",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    return APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error").to_response()


def register_error_handlers(app: FastAPI) -> None:
    """Install the JSON error handlers on an application."""
    app.add_exception_handler(APIError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
