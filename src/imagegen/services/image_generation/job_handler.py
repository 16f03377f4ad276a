"""Image generation job handler.

Runs one generation request end to end:

    received -> record created (pending) -> Gemini called -> record updated -> returned

Every step that touches the database runs in its own unit of work, so the
pending record is durable before Gemini is called and the terminal state is
durable before the handler returns. A crash between a successful Gemini call
and the final update leaves the record pending; nothing reconciles it.
"""

from typing import Awaitable, Callable

import structlog
from sqlalchemy.exc import SQLAlchemyError

from imagegen.models.generation_record import GenerationRecord, GenerationStatus
from imagegen.services.exceptions import (
    GenerationError,
    GenerationFailed,
    RecordStoreError,
)
from imagegen.services.image_generation.gemini_client import GeminiClient
from imagegen.services.image_generation.prompt_validator import (
    DEFAULT_MAX_PROMPT_LENGTH,
    validate_prompt,
)
from imagegen.uow import UnitOfWork

logger = structlog.get_logger(__name__)


class ImageJobHandler:
    """Orchestrates generation requests against the record store and Gemini."""

    def __init__(
        self,
        uow_factory: Callable[[], Awaitable[UnitOfWork]],
        client: GeminiClient,
        max_prompt_length: int = DEFAULT_MAX_PROMPT_LENGTH,
    ):
        self.uow_factory = uow_factory
        self.client = client
        self.max_prompt_length = max_prompt_length

    async def generate(self, prompt: str) -> GenerationRecord:
        """Generate an image for a prompt and persist the outcome.

        Args:
            prompt: Prompt text supplied by the caller

        Returns:
            Completed GenerationRecord

        Raises:
            ValueError: Prompt is invalid (no record created)
            GeminiConfigurationError: API key missing (no record created)
            RecordStoreError: Record could not be created or its final update failed
            GenerationFailed: Gemini call failed; the record is now failed
        """
        prompt = validate_prompt(prompt, self.max_prompt_length)
        self.client.ensure_configured()

        record = await self._create_pending(prompt)
        log = logger.bind(record_id=record.id)

        try:
            image_url = await self.client.generate(prompt)
        except GenerationError as e:
            log.warning(
                "image_job.generation_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            failed = await self._finish(record.id, error_message=str(e))
            raise GenerationFailed(failed, e) from e

        record = await self._finish(record.id, image_url=image_url)
        log.info("image_job.completed", image_url_length=len(image_url))
        return record

    async def list_records(self, limit: int | None = None, offset: int = 0):
        """Return (records newest first, total count)."""
        async with await self.uow_factory() as uow:
            records = await uow.records.list_newest_first(limit=limit, offset=offset)
            total = await uow.records.count()
        return records, total

    async def get_record(self, record_id: int) -> GenerationRecord | None:
        async with await self.uow_factory() as uow:
            return await uow.records.get_by_id(record_id)

    async def delete_record(self, record_id: int) -> bool:
        async with await self.uow_factory() as uow:
            deleted = await uow.records.delete(record_id)
        if deleted:
            logger.info("image_job.deleted", record_id=record_id)
        return deleted

    async def _create_pending(self, prompt: str) -> GenerationRecord:
        try:
            async with await self.uow_factory() as uow:
                record = await uow.records.add(
                    GenerationRecord(prompt=prompt, status=GenerationStatus.PENDING)
                )
        except SQLAlchemyError as e:
            logger.error(
                "image_job.create_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RecordStoreError("Failed to save image record") from e

        logger.info("image_job.created", record_id=record.id, prompt_length=len(prompt))
        return record

    async def _finish(
        self,
        record_id: int | None,
        image_url: str | None = None,
        error_message: str | None = None,
    ) -> GenerationRecord:
        """Move a pending record to its terminal state in a fresh transaction."""
        try:
            async with await self.uow_factory() as uow:
                record = await uow.records.get_by_id(record_id)  # type: ignore[arg-type]
                if record is None:
                    raise RecordStoreError(f"Image record {record_id} disappeared")

                if image_url is not None:
                    record.mark_completed(image_url)
                else:
                    record.mark_failed(error_message or "Image generation failed")

                return await uow.records.update(record)
        except SQLAlchemyError as e:
            logger.error(
                "image_job.update_failed",
                record_id=record_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RecordStoreError("Failed to update image record") from e
