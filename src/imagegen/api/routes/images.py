"""Image generation API endpoints.

- POST /api/images/generate - Generate an image from a prompt and store the outcome
- GET /api/images - List generation records, newest first
- GET /api/images/{image_id} - Get a single generation record
- DELETE /api/images/{image_id} - Delete a generation record

Error responses are {"error": "..."} with an optional "debug" field.
"""

import re
from datetime import datetime
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from imagegen.api.dependencies import get_job_handler
from imagegen.api.errors import APIError, ErrorResponse
from imagegen.models.generation_record import GenerationRecord, GenerationStatus
from imagegen.services.exceptions import (
    EmptyImageError,
    GeminiAPIError,
    GeminiConfigurationError,
    GeminiTransportError,
    GenerationFailed,
    RecordStoreError,
)
from imagegen.services.image_generation.job_handler import ImageJobHandler

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/images", tags=["images"])

# Plain decimal, no sign, no leading zero, no underscores, ASCII digits only
IMAGE_ID_PATTERN = re.compile(r"[1-9][0-9]*")
MAX_IMAGE_ID = 2**31 - 1  # INTEGER primary key upper bound

ERROR_RESPONSES: dict = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    500: {"model": ErrorResponse, "description": "Internal or downstream error"},
}


# Request/Response Models


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenerateImageRequest(BaseModel):
    """Request model for image generation."""

    prompt: str = Field(..., description="Text prompt describing the image")


class GenerateImageResponse(CamelModel):
    """Response model for a successful generation."""

    id: int = Field(..., description="Generation record ID")
    prompt: str = Field(..., description="Prompt the image was generated from")
    image_url: str = Field(..., description="Generated image as a data URI")
    status: GenerationStatus = Field(..., description="Record status (completed)")


class ImageRecordResponse(CamelModel):
    """Data Transfer Object for a generation record."""

    id: int
    prompt: str
    image_url: str = Field(
        default="", description="Data URI when completed, empty string otherwise"
    )
    status: GenerationStatus
    error_message: Optional[str] = Field(
        default=None, description="Failure reason when status is failed"
    )
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: GenerationRecord) -> "ImageRecordResponse":
        return cls(
            id=record.id,  # type: ignore[arg-type]
            prompt=record.prompt,
            image_url=record.image_url,
            status=record.status,
            error_message=record.error_message,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class DeleteImageResponse(BaseModel):
    """Response model for deletions."""

    message: str


def parse_image_id(image_id: str) -> int:
    """Parse a path identifier into a record ID.

    Raises:
        APIError: 400 unless the identifier is plain ASCII digits without a leading
            zero and fits the INTEGER primary key
    """
    if not IMAGE_ID_PATTERN.fullmatch(image_id):
        raise APIError(status.HTTP_400_BAD_REQUEST, "Invalid image ID")

    record_id = int(image_id)
    if record_id > MAX_IMAGE_ID:
        raise APIError(status.HTTP_400_BAD_REQUEST, "Invalid image ID")
    return record_id


def generation_failure_to_api_error(exc: GenerationFailed) -> APIError:
    """Map the cause of a failed generation to an HTTP error."""
    cause = exc.cause
    if isinstance(cause, GeminiAPIError):
        return APIError(status.HTTP_502_BAD_GATEWAY, str(cause))
    if isinstance(cause, EmptyImageError):
        return APIError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "No image generated in response",
            debug=cause.raw_body,
        )
    if isinstance(cause, GeminiTransportError):
        return APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, str(cause))
    return APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to parse Gemini response")


# API Endpoints


@router.post(
    "/generate",
    response_model=GenerateImageResponse,
    status_code=status.HTTP_200_OK,
    responses={**ERROR_RESPONSES, 502: {"model": ErrorResponse, "description": "Gemini error"}},
)
async def generate_image(
    request: GenerateImageRequest,
    handler: ImageJobHandler = Depends(get_job_handler),
) -> GenerateImageResponse:
    """Generate an image from a prompt.

    A pending record is created, Gemini is called once, and the record is
    moved to completed or failed before the response is sent.

    Example:
        POST /api/images/generate
        {"prompt": "a red apple"}

        Response 200:
        {
            "id": 1,
            "prompt": "a red apple",
            "imageUrl": "data:image/jpeg;base64,...",
            "status": "completed"
        }
    """
    try:
        record = await handler.generate(request.prompt)
    except ValueError as e:
        raise APIError(status.HTTP_400_BAD_REQUEST, f"Invalid request: {e}")
    except GeminiConfigurationError as e:
        logger.error("image_generate.not_configured")
        raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))
    except RecordStoreError as e:
        raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))
    except GenerationFailed as e:
        raise generation_failure_to_api_error(e)

    return GenerateImageResponse(
        id=record.id,  # type: ignore[arg-type]
        prompt=record.prompt,
        image_url=record.image_url,
        status=record.status,
    )


@router.get("", response_model=list[ImageRecordResponse], status_code=status.HTTP_200_OK)
async def list_images(
    response: Response,
    limit: Optional[int] = Query(default=None, ge=1, le=500, description="Page size"),
    offset: int = Query(default=0, ge=0, description="Number of records to skip"),
    handler: ImageJobHandler = Depends(get_job_handler),
) -> list[ImageRecordResponse]:
    """List generation records ordered by creation time, newest first.

    The total number of records is returned in the X-Total-Count header.
    """
    try:
        records, total = await handler.list_records(limit=limit, offset=offset)
    except Exception as e:
        logger.error("images.list_failed", error=str(e), error_type=type(e).__name__)
        raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch images")

    response.headers["X-Total-Count"] = str(total)
    return [ImageRecordResponse.from_record(record) for record in records]


@router.get(
    "/{image_id}",
    response_model=ImageRecordResponse,
    status_code=status.HTTP_200_OK,
    responses={**ERROR_RESPONSES, 404: {"model": ErrorResponse}},
)
async def get_image(
    image_id: str,
    handler: ImageJobHandler = Depends(get_job_handler),
) -> ImageRecordResponse:
    """Get a single generation record."""
    record_id = parse_image_id(image_id)

    try:
        record = await handler.get_record(record_id)
    except Exception as e:
        logger.error(
            "images.get_failed", record_id=record_id, error=str(e), error_type=type(e).__name__
        )
        raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch image")

    if record is None:
        raise APIError(status.HTTP_404_NOT_FOUND, "Image not found")

    return ImageRecordResponse.from_record(record)


@router.delete(
    "/{image_id}",
    response_model=DeleteImageResponse,
    status_code=status.HTTP_200_OK,
    responses={**ERROR_RESPONSES, 404: {"model": ErrorResponse}},
)
async def delete_image(
    image_id: str,
    handler: ImageJobHandler = Depends(get_job_handler),
) -> DeleteImageResponse:
    """Delete a generation record."""
    record_id = parse_image_id(image_id)

    try:
        deleted = await handler.delete_record(record_id)
    except Exception as e:
        logger.error(
            "images.delete_failed", record_id=record_id, error=str(e), error_type=type(e).__name__
        )
        raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to delete image")

    if not deleted:
        raise APIError(status.HTTP_404_NOT_FOUND, "Image not found")

    return DeleteImageResponse(message="Image deleted successfully")
